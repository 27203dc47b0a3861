# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Architecture descriptors.

An ArchInfo tells the leakage engine how registers are laid out in a register
bank snapshot, which registers hold status flags, and roughly how many cycles
an instruction takes.
"""

from typing import Dict, List, Optional

from pafsca.trace import ReferenceInstruction

# Mnemonics considered as branches by the cycle model.
BRANCH_MNEMONICS = ("b", "bl", "bx", "blx", "cbz", "cbnz", "br", "blr", "ret")
CONDITION_CODES = ("eq", "ne", "cs", "hs", "cc", "lo", "mi", "pl", "vs", "vc",
                   "hi", "ls", "ge", "lt", "gt", "le", "al")


class ArchInfo:
    """ Architecture descriptor base class.

    Subclasses provide the register names, in register bank order, their
    aliases and the status registers.
    """
    DESCRIPTION = "unknown architecture"
    REGISTERS: List[str] = []
    ALIASES: Dict[str, str] = {}
    STATUS_REGISTERS = ()
    PC_REGISTER = "pc"

    def __init__(self) -> None:
        self._index = {name: idx for idx, name in enumerate(self.REGISTERS)}

    def description(self) -> str:
        return self.DESCRIPTION

    def num_registers(self) -> int:
        return len(self.REGISTERS)

    def register_names(self) -> List[str]:
        return list(self.REGISTERS)

    def canonical_name(self, name: str) -> str:
        name = name.lower()
        return self.ALIASES.get(name, name)

    def register_index(self, name: str) -> int:
        """Index of register name in a register bank snapshot.

        Raises KeyError for registers this architecture does not know.
        """
        canonical = self.canonical_name(name)
        if canonical not in self._index:
            raise KeyError(f"Unknown register '{name}' for {self.description()}")
        return self._index[canonical]

    def is_status_register(self, name: str) -> bool:
        return self.canonical_name(name) in self.STATUS_REGISTERS

    def is_branch(self, instr: ReferenceInstruction) -> bool:
        for ra in instr.writes():
            if self.canonical_name(ra.name) == self.PC_REGISTER:
                return True
        mnemonic = instr.disassembly.split(maxsplit=1)[0].lower() if instr.disassembly else ""
        # Strip width qualifiers, e.g. "bne.w".
        mnemonic = mnemonic.split(".")[0]
        if mnemonic in BRANCH_MNEMONICS:
            return True
        return len(mnemonic) == 3 and mnemonic[0] == "b" and mnemonic[1:] in CONDITION_CODES

    def get_cycles(self, instr: ReferenceInstruction,
                   previous: Optional[ReferenceInstruction] = None) -> int:
        """Estimated number of cycles spent executing instr.

        Not executed instructions cost a single cycle. Executed instructions
        cost one cycle, plus one per memory access beyond the first, plus one
        to refill the pipeline after a branch.
        """
        if not instr.is_executed():
            return 1
        cycles = 1 + max(0, len(instr.mem_access) - 1)
        if self.is_branch(instr):
            cycles += 1
        return cycles


class V7MInfo(ArchInfo):
    """Arm v7-M (Cortex-M3/M4) architecture."""
    DESCRIPTION = "Arm V7M ISA"
    REGISTERS = [f"r{i}" for i in range(13)] + ["msp", "lr", "pc", "cpsr", "psr"]
    ALIASES = {"r13": "msp", "sp": "msp", "r14": "lr", "r15": "pc", "xpsr": "psr"}
    STATUS_REGISTERS = ("cpsr", "psr")


class V8AInfo(ArchInfo):
    """Arm v8-A (AArch64) architecture."""
    DESCRIPTION = "Arm V8A ISA"
    REGISTERS = [f"x{i}" for i in range(31)] + ["sp", "pc", "nzcv"]
    ALIASES = {**{f"w{i}": f"x{i}" for i in range(31)}, "lr": "x30",
               "wsp": "sp", "cpsr": "nzcv"}
    STATUS_REGISTERS = ("nzcv",)


ARCHITECTURES = {
    "v7m": V7MInfo,
    "v8a": V8AInfo,
}


def get_arch_info(name: str) -> ArchInfo:
    """Instantiate the architecture descriptor called name ("v7m" or "v8a")."""
    try:
        return ARCHITECTURES[name.lower()]()
    except KeyError:
        raise ValueError(f"Unsupported architecture: {name}") from None
