# mipsasm/mips_assembler.py
import logging
import re
from collections import namedtuple
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from mipsasm.mips_consts import (
    DEFAULT_STARTING_ADDRESS, I_TYPE_FORMATS, I_TYPE_OPCODE,
    J_TYPE_OPCODE, JALR_DEFAULT_RD, MEMORY_OPCODE, R_TYPE_FORMATS, R_TYPE_FUNCT,
    R_TYPE_OPTIONAL_SHAMT, REGIMM_RT, REGISTER_MAP, WORD_SIZE,
)
from mipsasm.mips_encoder import (
    make_i_record, make_j_record, make_r_record, parse_int_literal,
)
from mipsasm.mips_errors import (
    AssemblerError, InvalidRegister, InvalidStartingAddress, MalformedOperand,
    UnrecognizedInstruction, UnresolvedLabel,
)

logger = logging.getLogger(__name__)

_LABEL_LINE = re.compile(r'^(\S+):$')
# Anything that cannot start a numeric literal or a register
_LABEL_TOKEN = re.compile(r'^[^\s\d\-$(),][^\s(),]*$')
_INSTRUCTION = re.compile(r'^(\S+)(?:\s+(.*))?$')
_MEMORY_OPERAND = re.compile(r'^(?P<offset>[^()\s]+)?\s*(?:\(\s*(?P<base>[^()\s]+)\s*\))?$')

SourceLine = namedtuple("SourceLine", ["line_num", "text"])


@dataclass(frozen=True)
class Context:
    starting_address: int
    address: int
    labels: Mapping[str, int]


# --- Registers ---
def resolve_register(token):
    """Converts a register token ($t0, t0, $8, 8, ...) to its number. None means register 0."""
    if token is None:
        return 0
    name = token.strip().lower()
    if name.startswith('$'):
        name = name[1:]
    if name not in REGISTER_MAP:
        raise InvalidRegister(token)
    return REGISTER_MAP[name]


# --- Source Normalization & Labels ---
def normalize_source(assembly_code):
    """Strips comments and whitespace, drops blank lines. Keeps 1-based line numbers."""
    lines = []
    for i, raw in enumerate(assembly_code.splitlines()):
        text = raw.split('#')[0].strip()
        if text:
            lines.append(SourceLine(i + 1, text))
    return lines


def label_name(line):
    """Returns the label defined by a 'name:' line, or None for any other line."""
    match = _LABEL_LINE.match(line)
    return match.group(1) if match else None


def build_label_table(lines, starting_address):
    """Pass 1: maps each label to the address of the next non-label line."""
    labels = {}
    instruction_count = 0
    for line in lines:
        name = label_name(line)
        if name is None:
            instruction_count += 1
            continue
        address = starting_address + WORD_SIZE * instruction_count
        if name in labels:
            logger.warning(f"Duplicate label definition: '{name}' "
                           f"(0x{labels[name]:08x} replaced by 0x{address:08x})")
        labels[name] = address
        logger.debug(f"Pass 1: Label '{name}' defined at address 0x{address:08x}")
    return MappingProxyType(labels)


def parse_starting_address(text):
    address = parse_int_literal(text) if isinstance(text, str) else None
    if address is None or address < 0:
        raise InvalidStartingAddress(f"Invalid starting address: '{text}'")
    return address


# --- Operand Resolution ---
def _parse_immediate(token, what="immediate"):
    value = parse_int_literal(token)
    if value is None:
        raise MalformedOperand(f"Invalid {what} value: '{token}'")
    return value


def _resolve_target(token, labels):
    """Looks up a label, falling back to a literal address."""
    if token in labels:
        return labels[token]
    value = parse_int_literal(token)
    if value is not None:
        return value
    if _LABEL_TOKEN.match(token):
        raise UnresolvedLabel(token)
    raise MalformedOperand(f"Invalid target: '{token}' is not a label or an address")


def _branch_offset(token, context):
    """Signed word distance from the instruction after the branch to the target."""
    target = _resolve_target(token, context.labels)
    pc_plus_4 = context.address + WORD_SIZE
    byte_offset = target - pc_plus_4
    if byte_offset % WORD_SIZE != 0:
        raise MalformedOperand(
            f"Branch target 0x{target:08x} for '{token}' is not word-aligned relative to PC+4 (0x{pc_plus_4:08x})")
    word_offset = byte_offset // WORD_SIZE
    logger.debug(f"Branch to '{token}' (0x{target:08x}) from 0x{context.address:08x}. Offset = {word_offset}")
    return word_offset


def _check_count(mnemonic, operands, *allowed):
    if len(operands) not in allowed:
        expected = " or ".join(str(n) for n in allowed)
        raise MalformedOperand(
            f"Incorrect operand count for '{mnemonic}'. Expected {expected}, got {len(operands)}.")


def _is_register_token(token):
    """True for '$'-prefixed tokens and named registers; bare numerals read as literals."""
    name = token.strip().lower()
    return name.startswith('$') or (name in REGISTER_MAP and not name.isdigit())


def _drop_middle(layout):
    return (layout[0],) + layout[2:]


# --- Format Matchers ---
# Each matcher returns None when the mnemonic isn't one of its own; once it
# claims a line it either builds the record or raises.
def _match_r_type(mnemonic, operands, line, context):
    funct = R_TYPE_FUNCT.get(mnemonic)
    if funct is None:
        return None

    layout = R_TYPE_FORMATS[mnemonic]
    fields = {"rd": 0, "rs": 0, "rt": 0, "shamt": 0}

    if mnemonic == "jalr":
        _check_count(mnemonic, operands, 1, 2)
        if len(operands) == 1:
            layout = ("rs",)
            fields["rd"] = JALR_DEFAULT_RD
    elif mnemonic in R_TYPE_OPTIONAL_SHAMT:
        # rs may be left out: 'add $t0, $t1' is rd, rt
        _check_count(mnemonic, operands, 2, 3, 4)
        layout = _drop_middle(layout) if len(operands) == 2 else layout + ("shamt",)
    elif layout == ("rd", "rt", "shamt") and len(operands) >= 3 and _is_register_token(operands[2]):
        # Three-register shift form, e.g. 'sll $zero, $zero, $zero'
        _check_count(mnemonic, operands, 3, 4)
        layout = ("rd", "rs", "rt", "shamt")
    else:
        _check_count(mnemonic, operands, len(layout))

    for field_name, token in zip(layout, operands):
        if field_name == "shamt":
            fields["shamt"] = _parse_immediate(token, "shift amount")
        else:
            fields[field_name] = resolve_register(token)

    return make_r_record(line, context.address, funct=funct, **fields)


def _match_i_type(mnemonic, operands, line, context):
    opcode = I_TYPE_OPCODE.get(mnemonic)
    if opcode is None:
        return None

    layout = I_TYPE_FORMATS[mnemonic]
    if len(layout) == 3:
        # The middle register is optional: 'addi $t0, 5' leaves rs at 0
        _check_count(mnemonic, operands, 2, 3)
        if len(operands) == 2:
            layout = _drop_middle(layout)
    else:
        _check_count(mnemonic, operands, len(layout))
    fields = {"rs": 0, "rt": 0, "immediate": 0}

    for field_name, token in zip(layout, operands):
        if field_name == "imm":
            fields["immediate"] = _parse_immediate(token)
        elif field_name == "label":
            fields["immediate"] = _branch_offset(token, context)
        else:
            fields[field_name] = resolve_register(token)

    # REGIMM instructions use the rt field to select the variant
    if mnemonic in REGIMM_RT:
        fields["rt"] = int(REGIMM_RT[mnemonic])

    return make_i_record(line, context.address, opcode, **fields)


def _match_memory(mnemonic, operands, line, context):
    opcode = MEMORY_OPCODE.get(mnemonic)
    if opcode is None:
        return None

    _check_count(mnemonic, operands, 2)
    rt_token, memory_token = operands
    match = _MEMORY_OPERAND.match(memory_token)
    if not match:
        raise MalformedOperand(
            f"Invalid memory operand format: '{memory_token}'. Expected 'offset($reg)' or '($reg)'.")

    offset_token = match.group("offset")
    offset = _parse_immediate(offset_token, "offset") if offset_token else 0
    rt = resolve_register(rt_token)
    rs = resolve_register(match.group("base"))
    return make_i_record(line, context.address, opcode, rs=rs, rt=rt, immediate=offset)


def _match_j_type(mnemonic, operands, line, context):
    opcode = J_TYPE_OPCODE.get(mnemonic)
    if opcode is None:
        return None

    _check_count(mnemonic, operands, 1)
    target = _resolve_target(operands[0], context.labels)
    logger.debug(f"Jump '{mnemonic}' to '{operands[0]}' (0x{target:08x}) from 0x{context.address:08x}")
    return make_j_record(line, context.address, opcode, target)


FORMAT_MATCHERS = (_match_r_type, _match_i_type, _match_memory, _match_j_type)


def split_instruction(line):
    """Splits 'mnemonic op1, op2, ...' into the lower-cased mnemonic and its operand tokens."""
    match = _INSTRUCTION.match(line.strip())
    if not match:
        raise UnrecognizedInstruction(f"Cannot parse line: '{line}'")
    mnemonic = match.group(1).lower()
    operands_str = (match.group(2) or "").strip()
    if not operands_str:
        return mnemonic, []
    operands = [op.strip() for op in operands_str.split(',')]
    if not all(operands):
        raise MalformedOperand(f"Empty operand in '{line}'")
    return mnemonic, operands


def parse_line(line, context):
    """Encodes one normalized, non-label source line. Raises AssemblerError on failure."""
    mnemonic, operands = split_instruction(line)
    for matcher in FORMAT_MATCHERS:
        record = matcher(mnemonic, operands, line, context)
        if record is not None:
            logger.debug(f"Assembled {record.hex} for '{line}' at 0x{context.address:08x}")
            return record
    raise UnrecognizedInstruction(f"Unknown instruction: '{mnemonic}'")


class MipsAssembler:
    def __init__(self):
        self.labels = MappingProxyType({})
        self.errors = []

    def _add_error(self, line_num, message, instruction_text=""):
        logger.debug(f"Adding error: Line {line_num}, Msg: {message}, Text: '{instruction_text}'")
        self.errors.append({"line": line_num, "message": message, "text": instruction_text})

    def assemble(self, assembly_code, starting_address=DEFAULT_STARTING_ADDRESS):
        """
        Assembles a program. Returns one entry per non-label line, in source
        order: the instruction record, or None if that line failed.
        """
        logger.info("Starting assembly process...")
        self.labels = MappingProxyType({})
        self.errors = []

        start = parse_starting_address(starting_address)
        lines = normalize_source(assembly_code)
        self.labels = build_label_table([l.text for l in lines], start)

        instructions = [l for l in lines if label_name(l.text) is None]
        results = []
        for index, source_line in enumerate(instructions):
            context = Context(start, start + WORD_SIZE * index, self.labels)
            try:
                record = parse_line(source_line.text, context)
            except AssemblerError as e:
                logger.warning(f"Line {source_line.line_num}: {e.message}")
                self._add_error(source_line.line_num, e.message, source_line.text)
                record = None
            results.append(record)

        if self.errors:
            logger.warning(f"Assembly completed with {len(self.errors)} errors.")
        else:
            logger.info("Assembly successful.")
        return results


def assemble(assembly_code, starting_address=DEFAULT_STARTING_ADDRESS):
    return MipsAssembler().assemble(assembly_code, starting_address)
