# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Executed-instruction records.

These are the per-step execution facts the leakage simulation consumes. They
are produced by an instruction trace source (e.g. a Tarmac parser) which is
not part of this package.
"""

import enum
from dataclasses import dataclass, field
from typing import Tuple


class AccessType(str, enum.Enum):
    """Direction of a memory or register access."""

    READ = "R"
    WRITE = "W"


class ExecutionState(str, enum.Enum):
    """Whether an instruction was executed or skipped (e.g. failed condition)."""

    EXECUTED = "X"
    NOT_EXECUTED = "-"


@dataclass(frozen=True)
class MemoryAccess:
    """ Memory access.

    size is expressed in bytes.
    """
    size: int
    address: int
    value: int
    access: AccessType

    def is_load(self) -> bool:
        return self.access == AccessType.READ

    def is_store(self) -> bool:
        return self.access == AccessType.WRITE

    def __str__(self) -> str:
        return f"{self.access.value}{self.size}({self.value:#x})@{self.address:#x}"


@dataclass(frozen=True)
class RegisterAccess:
    """ Register access.
    """
    name: str
    value: int
    access: AccessType

    def is_read(self) -> bool:
        return self.access == AccessType.READ

    def is_write(self) -> bool:
        return self.access == AccessType.WRITE

    def __str__(self) -> str:
        return f"{self.access.value}({self.value:#x})@{self.name}"


@dataclass(frozen=True)
class ReferenceInstruction:
    """ One executed instruction.

    time is the logical time stamp of the instruction, which strictly
    increases along a trace. width is the instruction encoding size in bits.
    Memory and register accesses are kept in the order they were reported.
    """
    time: int
    executed: ExecutionState
    pc: int
    iset: str
    width: int
    instruction: int
    disassembly: str
    mem_access: Tuple[MemoryAccess, ...] = field(default_factory=tuple)
    reg_access: Tuple[RegisterAccess, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any sequence, but store tuples to keep records hashable.
        object.__setattr__(self, "mem_access", tuple(self.mem_access))
        object.__setattr__(self, "reg_access", tuple(self.reg_access))

    def is_executed(self) -> bool:
        return self.executed == ExecutionState.EXECUTED

    def loads(self) -> Tuple[MemoryAccess, ...]:
        return tuple(ma for ma in self.mem_access if ma.is_load())

    def stores(self) -> Tuple[MemoryAccess, ...]:
        return tuple(ma for ma in self.mem_access if ma.is_store())

    def reads(self) -> Tuple[RegisterAccess, ...]:
        return tuple(ra for ra in self.reg_access if ra.is_read())

    def writes(self) -> Tuple[RegisterAccess, ...]:
        return tuple(ra for ra in self.reg_access if ra.is_write())
