# mipsasm/mips_encoder.py
"""
Instruction records and the bit-field packing behind them.

Fields are packed MSB first into a 32-bit word:

    R: opcode(6)=0 rs(5) rt(5) rd(5) shamt(5) funct(6)
    I: opcode(6)   rs(5) rt(5) immediate(16)
    J: opcode(6)   target(26)

Signed shift amounts and immediates are stored in two's complement and
truncated to their field width; oversized values are never rejected.
"""
import logging
import re
from dataclasses import asdict, dataclass, field

from mipsasm.mips_consts import (
    IMMEDIATE_BITS, JUMP_TARGET_MASK, REGION_MASK, SHAMT_BITS, WORD_SIZE,
)

logger = logging.getLogger(__name__)

_INT_LITERAL = re.compile(r'^(-?)(?:0[xX]([0-9a-fA-F]+)|([0-9]+))$')


def parse_int_literal(token):
    """Parses a decimal or 0x-prefixed hex literal, optionally negative. Returns None if it isn't one."""
    if token is None:
        return None
    match = _INT_LITERAL.match(token.strip())
    if not match:
        return None
    sign, hex_digits, dec_digits = match.groups()
    value = int(hex_digits, 16) if hex_digits is not None else int(dec_digits, 10)
    return -value if sign else value


def to_twos_complement(value, width):
    """Masks a signed integer into a 'width'-bit two's complement field."""
    return value & ((1 << width) - 1)


def format_word(word):
    return f"0x{word & 0xFFFFFFFF:08x}"


# --- Packing ---
def encode_r(rs, rt, rd, shamt, funct):
    shamt = to_twos_complement(shamt, SHAMT_BITS)
    return (0 << 26) | (rs << 21) | (rt << 16) | (rd << 11) | (shamt << 6) | funct


def encode_i(opcode, rs, rt, immediate):
    immediate = to_twos_complement(immediate, IMMEDIATE_BITS)
    return (opcode << 26) | (rs << 21) | (rt << 16) | immediate


def encode_j(opcode, target):
    return (opcode << 26) | ((target >> 2) & JUMP_TARGET_MASK)


# --- Records ---
@dataclass(frozen=True)
class InstructionBase:
    original: str
    opcode: int
    address: int
    hex: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class RType(InstructionBase):
    rs: int
    rt: int
    rd: int
    shamt: int
    funct: int
    type: str = field(default="R", init=False)


@dataclass(frozen=True)
class IType(InstructionBase):
    rs: int
    rt: int
    immediate: int
    type: str = field(default="I", init=False)


@dataclass(frozen=True)
class JType(InstructionBase):
    target: int
    type: str = field(default="J", init=False)


def make_r_record(original, address, rs, rt, rd, shamt, funct):
    shamt = to_twos_complement(shamt, SHAMT_BITS)
    word = encode_r(rs, rt, rd, shamt, funct)
    return RType(original=original, opcode=0, address=address, hex=format_word(word),
                 rs=rs, rt=rt, rd=rd, shamt=shamt, funct=int(funct))


def make_i_record(original, address, opcode, rs, rt, immediate):
    immediate = to_twos_complement(immediate, IMMEDIATE_BITS)
    word = encode_i(opcode, rs, rt, immediate)
    return IType(original=original, opcode=int(opcode), address=address, hex=format_word(word),
                 rs=rs, rt=rt, immediate=immediate)


def make_j_record(original, address, opcode, target):
    if target % WORD_SIZE != 0:
        logger.warning(f"Jump target 0x{target:08x} is not word-aligned; low bits are dropped.")
    if (address & REGION_MASK) != (target & REGION_MASK):
        # The upper 4 bits come from the PC at run time, not from the field
        logger.warning(f"Jump target 0x{target:08x} crosses 256MB boundary from 0x{address:08x}.")
    word = encode_j(opcode, target)
    return JType(original=original, opcode=int(opcode), address=address, hex=format_word(word),
                 target=target)
