# mipsasm/mips_consts.py
from enum import IntEnum
from types import MappingProxyType

DEFAULT_STARTING_ADDRESS = "0x00400000"

WORD_SIZE = 4
SHAMT_BITS = 5
IMMEDIATE_BITS = 16
JUMP_TARGET_MASK = 0x03FFFFFF
REGION_MASK = 0xF0000000  # Upper 4 bits shared by a jump and its target


# --- Register Names (without the '$' sigil) ---
def _bank(prefix, first_index, count, first_suffix=0):
    return {f"{prefix}{first_suffix + i}": first_index + i for i in range(count)}


REGISTER_MAP = MappingProxyType({
    "zero": 0, "at": 1,
    **_bank("v", 2, 2),
    **_bank("a", 4, 4),
    **_bank("t", 8, 8),
    **_bank("s", 16, 8),
    **_bank("t", 24, 2, first_suffix=8),  # t8, t9 live after the s bank
    **_bank("k", 26, 2),
    "gp": 28, "sp": 29, "fp": 30, "ra": 31,
    # Numeric names map to themselves
    **{str(i): i for i in range(32)},
})

# Canonical name per register number, used when rendering
REGISTER_NAMES = MappingProxyType({
    num: f"${name}" for name, num in REGISTER_MAP.items() if not name.isdigit()
})


# --- Opcode / Funct Enumerations ---
class Opcode(IntEnum):
    SPECIAL = 0x00  # R-type, operation selected by funct
    REGIMM = 0x01   # Branch variant selected by rt
    J = 0x02
    JAL = 0x03
    BEQ = 0x04
    BNE = 0x05
    BLEZ = 0x06
    BGTZ = 0x07
    ADDI = 0x08
    ADDIU = 0x09
    SLTI = 0x0a
    SLTIU = 0x0b
    ANDI = 0x0c
    ORI = 0x0d
    XORI = 0x0e
    LUI = 0x0f
    LB = 0x20
    LH = 0x21
    LWL = 0x22
    LW = 0x23
    LBU = 0x24
    LHU = 0x25
    LWR = 0x26
    SB = 0x28
    SH = 0x29
    SWL = 0x2a
    SW = 0x2b
    SWR = 0x2e


class Funct(IntEnum):
    SLL = 0x00
    SRL = 0x02
    SRA = 0x03
    SLLV = 0x04
    SRLV = 0x06
    SRAV = 0x07
    JR = 0x08
    JALR = 0x09
    SYSCALL = 0x0c
    BREAK = 0x0d
    MFHI = 0x10
    MTHI = 0x11
    MFLO = 0x12
    MTLO = 0x13
    MULT = 0x18
    MULTU = 0x19
    DIV = 0x1a
    DIVU = 0x1b
    ADD = 0x20
    ADDU = 0x21
    SUB = 0x22
    SUBU = 0x23
    AND = 0x24
    OR = 0x25
    XOR = 0x26
    NOR = 0x27
    SLT = 0x2a
    SLTU = 0x2b


class RegimmRt(IntEnum):
    BLTZ = 0x00
    BGEZ = 0x01
    BLTZAL = 0x10
    BGEZAL = 0x11


# --- Mnemonic Lookup Tables ---
R_TYPE_FUNCT = MappingProxyType({f.name.lower(): f for f in Funct})

I_TYPE_OPCODE = MappingProxyType({
    "addi": Opcode.ADDI, "addiu": Opcode.ADDIU, "slti": Opcode.SLTI,
    "sltiu": Opcode.SLTIU, "andi": Opcode.ANDI, "ori": Opcode.ORI,
    "xori": Opcode.XORI, "lui": Opcode.LUI,
    "beq": Opcode.BEQ, "bne": Opcode.BNE,
    "beqz": Opcode.BEQ,  # beq against $zero
    "blez": Opcode.BLEZ, "bgtz": Opcode.BGTZ,
    "bltz": Opcode.REGIMM, "bgez": Opcode.REGIMM,
    "bltzal": Opcode.REGIMM, "bgezal": Opcode.REGIMM,
})

MEMORY_OPCODE = MappingProxyType({
    "lb": Opcode.LB, "lh": Opcode.LH, "lwl": Opcode.LWL, "lw": Opcode.LW,
    "lbu": Opcode.LBU, "lhu": Opcode.LHU, "lwr": Opcode.LWR,
    "sb": Opcode.SB, "sh": Opcode.SH, "swl": Opcode.SWL, "sw": Opcode.SW,
    "swr": Opcode.SWR,
})

J_TYPE_OPCODE = MappingProxyType({
    "j": Opcode.J, "jal": Opcode.JAL,
})

REGIMM_RT = MappingProxyType({r.name.lower(): r for r in RegimmRt})


# --- Operand Layouts ---
# R-Type: order in which operands appear in source
R_TYPE_FORMATS = MappingProxyType({
    # rd, rs, rt (an optional trailing shamt is accepted)
    **{m: ("rd", "rs", "rt") for m in (
        "add", "addu", "sub", "subu", "and", "or", "xor", "nor", "slt", "sltu")},
    # rd, rt, shamt
    "sll": ("rd", "rt", "shamt"), "srl": ("rd", "rt", "shamt"), "sra": ("rd", "rt", "shamt"),
    # rd, rt, rs
    "sllv": ("rd", "rt", "rs"), "srlv": ("rd", "rt", "rs"), "srav": ("rd", "rt", "rs"),
    "jr": ("rs",), "mthi": ("rs",), "mtlo": ("rs",),
    "mfhi": ("rd",), "mflo": ("rd",),
    "mult": ("rs", "rt"), "multu": ("rs", "rt"), "div": ("rs", "rt"), "divu": ("rs", "rt"),
    # jalr: rd, rs (or just rs, rd defaults to $ra=31)
    "jalr": ("rd", "rs"),
    "syscall": (), "break": (),
})

# R-Type layouts that take an optional trailing shift amount
R_TYPE_OPTIONAL_SHAMT = frozenset(
    m for m, layout in R_TYPE_FORMATS.items() if layout == ("rd", "rs", "rt")
)

JALR_DEFAULT_RD = 31

# I-Type: "imm" is a literal, "label" is a branch target
I_TYPE_FORMATS = MappingProxyType({
    **{m: ("rt", "rs", "imm") for m in (
        "addi", "addiu", "slti", "sltiu", "andi", "ori", "xori")},
    "lui": ("rt", "imm"),
    "beq": ("rs", "rt", "label"), "bne": ("rs", "rt", "label"),
    # rs, label (rt is zero or the REGIMM variant)
    **{m: ("rs", "label") for m in (
        "beqz", "blez", "bgtz", "bltz", "bgez", "bltzal", "bgezal")},
})
