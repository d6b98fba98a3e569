# mipsasm/mips_disassembler.py
import logging

from mipsasm.mips_consts import (
    DEFAULT_STARTING_ADDRESS, I_TYPE_FORMATS, IMMEDIATE_BITS, JUMP_TARGET_MASK,
    MEMORY_OPCODE, R_TYPE_FORMATS, REGION_MASK, REGISTER_NAMES, Funct, Opcode,
    RegimmRt,
)
from mipsasm.mips_assembler import parse_starting_address
from mipsasm.mips_encoder import parse_int_literal

logger = logging.getLogger(__name__)

# beqz shares beq's opcode; decode to the canonical mnemonic
OPCODE_MAP_REV = {op: op.name.lower() for op in Opcode if op not in (Opcode.SPECIAL, Opcode.REGIMM)}
FUNCT_MAP_REV = {f: f.name.lower() for f in Funct}
REGIMM_RT_MAP_REV = {r: r.name.lower() for r in RegimmRt}


def _sign_extend(value, bits=IMMEDIATE_BITS):
    sign_bit = 1 << (bits - 1)
    if value & sign_bit:
        return value - (1 << bits)
    return value


def _to_word(word):
    if isinstance(word, str):
        value = parse_int_literal(word if word.lower().startswith(("0x", "-")) else f"0x{word}")
        if value is None:
            raise ValueError(f"Invalid hex word: '{word}'")
        word = value
    if not 0 <= word <= 0xFFFFFFFF:
        raise ValueError(f"Word out of 32-bit range: {word}")
    return word


def decode_word(word):
    """Splits a 32-bit instruction word (int or hex string) back into its format fields."""
    word = _to_word(word)
    opcode = (word >> 26) & 0x3F
    if opcode == Opcode.SPECIAL:
        return {
            "type": "R",
            "opcode": opcode,
            "rs": (word >> 21) & 0x1F,
            "rt": (word >> 16) & 0x1F,
            "rd": (word >> 11) & 0x1F,
            "shamt": (word >> 6) & 0x1F,
            "funct": word & 0x3F,
        }
    if opcode in (Opcode.J, Opcode.JAL):
        return {"type": "J", "opcode": opcode, "target_field": word & JUMP_TARGET_MASK}
    return {
        "type": "I",
        "opcode": opcode,
        "rs": (word >> 21) & 0x1F,
        "rt": (word >> 16) & 0x1F,
        "immediate": word & 0xFFFF,
    }


class MipsDisassembler:
    def __init__(self):
        self.errors = []

    def _get_reg_name(self, reg_num):
        return REGISTER_NAMES.get(reg_num, f"${reg_num}")

    def _render_r_type(self, fields):
        mnemonic = FUNCT_MAP_REV.get(fields["funct"])
        if mnemonic is None:
            return f"Unknown R-type (funct=0x{fields['funct']:02x})"
        if mnemonic == "jalr" and fields["rd"] == 31:
            return f"jalr {self._get_reg_name(fields['rs'])}"

        operands = []
        for field_name in R_TYPE_FORMATS[mnemonic]:
            if field_name == "shamt":
                operands.append(str(fields["shamt"]))
            else:
                operands.append(self._get_reg_name(fields[field_name]))
        if fields["shamt"] and "shamt" not in R_TYPE_FORMATS[mnemonic]:
            operands.append(str(fields["shamt"]))
        return f"{mnemonic} {', '.join(operands)}".rstrip()

    def _render_i_type(self, fields, pc):
        opcode = fields["opcode"]
        if opcode == Opcode.REGIMM:
            mnemonic = REGIMM_RT_MAP_REV.get(fields["rt"])
            if mnemonic is None:
                return f"Unknown REGIMM instruction (opcode=0x1, rt={fields['rt']})"
        else:
            mnemonic = OPCODE_MAP_REV.get(opcode)
            if mnemonic is None:
                return f"Unknown Instruction (opcode=0x{opcode:02x})"

        signed_imm = _sign_extend(fields["immediate"])
        rs_name = self._get_reg_name(fields["rs"])
        rt_name = self._get_reg_name(fields["rt"])

        if mnemonic in MEMORY_OPCODE:
            return f"{mnemonic} {rt_name}, {signed_imm}({rs_name})"

        operands = []
        for field_name in I_TYPE_FORMATS[mnemonic]:
            if field_name == "label":
                branch_target = (pc + 4 + signed_imm * 4) & 0xFFFFFFFF
                operands.append(f"0x{branch_target:08x}")
            elif field_name == "imm":
                if mnemonic in ("andi", "ori", "xori", "lui"):
                    # Logical immediates are zero-extended; show them in hex
                    operands.append(f"0x{fields['immediate']:x}")
                else:
                    operands.append(str(signed_imm))
            else:
                operands.append(self._get_reg_name(fields[field_name]))
        return f"{mnemonic} {', '.join(operands)}"

    def disassemble_instruction(self, machine_code, pc=0x00400000):
        """Renders one instruction word as assembly text. Uses PC for branch/jump targets."""
        fields = decode_word(machine_code)
        if fields["type"] == "R":
            return self._render_r_type(fields)
        if fields["type"] == "J":
            mnemonic = OPCODE_MAP_REV[fields["opcode"]]
            # Pseudo-absolute target: upper bits come from the PC
            target_addr = (fields["target_field"] << 2) | (pc & REGION_MASK)
            return f"{mnemonic} 0x{target_addr:08x}"
        return self._render_i_type(fields, pc)

    def disassemble(self, machine_code_hex_lines, start_address=DEFAULT_STARTING_ADDRESS):
        """Disassembles a list of hex strings. Returns dict with 'assembly_code' and 'errors'."""
        assembly_lines = []
        self.errors = []
        current_pc = parse_starting_address(start_address)

        for i, hex_line in enumerate(machine_code_hex_lines):
            line_num = i + 1
            hex_line = str(hex_line).strip().lower()
            if not hex_line:
                continue
            try:
                assembly_lines.append(self.disassemble_instruction(hex_line, current_pc))
            except ValueError as e:
                logger.warning(f"Disassembly failed on line {line_num}: {e}")
                self.errors.append({"line": line_num, "message": f"Invalid hex format/value: {e}"})
                assembly_lines.append(f"Error line {line_num}: Invalid hex input")
            current_pc += 4

        return {"assembly_code": "\n".join(assembly_lines), "errors": self.errors}
