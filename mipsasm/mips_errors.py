# mipsasm/mips_errors.py
"""
Exception types raised while assembling a program.

Per-line errors are caught by MipsAssembler and turned into a None entry in
the result; InvalidStartingAddress aborts the whole run.
"""


class AssemblerError(Exception):
    """Base exception for assembler errors."""

    def __init__(self, message, line_num=None, line_text=None):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        if line_num is not None:
            if line_text:
                message = f"Line {line_num}: {message}\n  {line_text}"
            else:
                message = f"Line {line_num}: {message}"
        super().__init__(message)


class InvalidRegister(AssemblerError):
    """Register token that names no register."""

    def __init__(self, token, line_num=None, line_text=None):
        self.token = token
        super().__init__(f"Invalid register name: '{token}'", line_num, line_text)


class UnrecognizedInstruction(AssemblerError):
    pass


class MalformedOperand(AssemblerError):
    """The mnemonic is known but its operands do not fit its layout."""


class UnresolvedLabel(MalformedOperand):
    def __init__(self, label, line_num=None, line_text=None):
        self.label = label
        super().__init__(f"Undefined label: '{label}'", line_num, line_text)


class InvalidStartingAddress(AssemblerError):
    pass
