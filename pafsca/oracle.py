# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Prior state providers for the leakage engine.

An oracle answers "what did the register bank / memory hold at time t". A
query at time t returns the state once everything executed at t has
committed, so the state right before the instruction at time t is obtained
by querying t - 1. The engine never mutates an oracle.
"""

from bisect import bisect_right
from typing import Dict, List, Mapping, Optional, Sequence

from pafsca.arch import ArchInfo
from pafsca.trace import ReferenceInstruction


class Oracle:
    """ Default oracle.

    The register bank holds num_registers times value and memory reads as
    zero, at any time. This is sufficient for Hamming weight analyses and
    for Hamming distance analyses without memory update transitions.
    """
    def __init__(self, num_registers: int = 0, value: int = 0) -> None:
        self.num_registers = num_registers
        self.value = value

    def register_index(self, name: str, arch: ArchInfo) -> int:
        """Position of register name in the banks returned by get_reg_bank_state."""
        return arch.register_index(name)

    def get_reg_bank_state(self, t: int) -> List[int]:
        return [self.value] * self.num_registers

    def get_memory_state(self, address: int, size: int, t: int) -> int:
        return 0


class TraceOracle(Oracle):
    """ Oracle replaying the register and memory writes of an instruction
    sequence.

    Registers are laid out in arch order when arch is provided, otherwise in
    the order they are first written. register_index() maps a register
    name to its position in either layout. memory optionally provides the
    initial content of individual bytes. Memory values are assembled in
    little-endian order.
    """
    def __init__(self, instructions: Sequence[ReferenceInstruction],
                 arch: Optional[ArchInfo] = None, initial_value: int = 0,
                 memory: Optional[Mapping[int, int]] = None) -> None:
        self.times: List[int] = []
        for instr in instructions:
            if self.times and instr.time <= self.times[-1]:
                raise ValueError(f"Time must be strictly increasing: {instr.time} "
                                 f"after {self.times[-1]}")
            self.times.append(instr.time)

        self.arch = arch
        self.registers: Dict[str, int] = {}
        if arch is not None:
            for name in arch.register_names():
                self.registers[name] = arch.register_index(name)
        else:
            for instr in instructions:
                for ra in instr.writes():
                    self.registers.setdefault(ra.name, len(self.registers))
        super().__init__(len(self.registers), initial_value)

        # One register bank snapshot per instruction, taken after it executed.
        self.snapshots: List[List[int]] = []
        state = [initial_value] * self.num_registers
        for instr in instructions:
            state = list(state)
            for ra in instr.writes():
                name = arch.canonical_name(ra.name) if arch is not None else ra.name
                if name not in self.registers:
                    raise KeyError(f"Unknown register name '{ra.name}'")
                state[self.registers[name]] = ra.value
            self.snapshots.append(state)

        # Byte granular memory write history: address -> ([time], [value]).
        self.initial_memory = dict(memory) if memory else {}
        self.mem_writes: Dict[int, tuple] = {}
        for instr in instructions:
            for ma in instr.stores():
                for i in range(ma.size):
                    times, values = self.mem_writes.setdefault(ma.address + i, ([], []))
                    times.append(instr.time)
                    values.append((ma.value >> (8 * i)) & 0xff)

    def register_index(self, name: str, arch: ArchInfo) -> int:
        if self.arch is not None:
            return self.arch.register_index(name)
        if name not in self.registers:
            raise KeyError(f"Register '{name}' is never written in this trace")
        return self.registers[name]

    def get_reg_bank_state(self, t: int) -> List[int]:
        idx = bisect_right(self.times, t) - 1
        if idx < 0:
            return [self.value] * self.num_registers
        return list(self.snapshots[idx])

    def get_byte(self, address: int, t: int) -> int:
        history = self.mem_writes.get(address)
        if history is not None:
            times, values = history
            idx = bisect_right(times, t) - 1
            if idx >= 0:
                return values[idx]
        return self.initial_memory.get(address, 0)

    def get_memory_state(self, address: int, size: int, t: int) -> int:
        value = 0
        for i in range(size):
            value |= self.get_byte(address + i, t) << (8 * i)
        return value
