# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Trace sinks.

A dumper consumes one category of per-trace data produced while analyzing an
instruction trace: register bank snapshots, memory accesses or instructions.
Power sinks live in pafsca.power. The engine only relies on the role classes
(RegBankDumper, MemoryAccessesDumper, InstrDumper), each output format is an
independent subclass.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO, Union

import numpy as np

from pafsca.trace import MemoryAccess, ReferenceInstruction

logger = logging.getLogger()

Output = Union[str, Path, TextIO]


class Dumper:
    """ Dumper base class.

    Dumpers are driven through pre_dump() / post_dump() around each analyzed
    trace and next_trace() when switching to the next trace. Nothing must be
    dumped when enabled() is False.
    """
    def __init__(self, enable: bool) -> None:
        self._enable = enable

    def enabled(self) -> bool:
        return self._enable

    def pre_dump(self) -> None:
        """Called at the beginning of a trace."""

    def post_dump(self) -> None:
        """Called at the end of a trace."""

    def next_trace(self) -> None:
        """Update state when switching to the next trace."""

    def close(self) -> None:
        """Release resources and write any pending output."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class OutputStream:
    """ Text output, either a file opened on behalf of the dumper or a
    caller-provided stream.

    An empty filename means no output at all.
    """
    def __init__(self, output: Output) -> None:
        self.filename = None
        self.owned = False
        if isinstance(output, (str, Path)):
            self.filename = str(output)
            self.stream = open(self.filename, "w") if self.filename else None
            self.owned = self.stream is not None
        else:
            self.stream = output

    def is_open(self) -> bool:
        return self.stream is not None

    def write(self, text: str) -> None:
        if self.stream is not None:
            self.stream.write(text)

    def flush(self) -> None:
        if self.stream is not None:
            self.stream.flush()

    def close(self) -> None:
        if self.stream is None:
            return
        if self.owned:
            self.stream.close()
            self.stream = None
        else:
            self.stream.flush()


class YAMLStream(OutputStream):
    """ Output stream for the YAML dumpers.

    Emits the top-level header key on creation and the per-trace list
    separator lazily, so that the output never ends with an empty list
    element.
    """
    SEPARATOR = "  - \n"

    def __init__(self, output: Output, header: str) -> None:
        super().__init__(output)
        self.header = header
        self._sep = self.SEPARATOR
        self.write(f"{header}:\n")

    def next_trace(self) -> None:
        self._sep = self.SEPARATOR

    def emit_trace_separator(self) -> None:
        if self._sep:
            self.write(self._sep)
            self._sep = None


def format_accesses(accesses: Iterable[MemoryAccess]) -> str:
    """Format memory accesses as a YAML flow list of [address, size, value]."""
    return "[" + ", ".join(f"[{ma.address:#x}, {ma.size}, {ma.value:#x}]"
                           for ma in accesses) + "]"


class NPYMatrix:
    """ Row based accumulator saved as a .npy matrix.

    One row per trace. Rows of different lengths are zero padded on the
    right when saved.
    """
    def __init__(self, num_rows: int, dtype) -> None:
        self.rows: List[list] = [[] for _ in range(max(num_rows, 1))]
        self.current = 0
        self.dtype = dtype

    def append(self, values: Iterable) -> None:
        while self.current >= len(self.rows):
            self.rows.append([])
        self.rows[self.current].extend(values)

    def next(self) -> None:
        self.current += 1

    def to_array(self) -> np.ndarray:
        num_cols = max(len(row) for row in self.rows)
        array = np.zeros((len(self.rows), num_cols), dtype=self.dtype)
        for idx, row in enumerate(self.rows):
            array[idx, :len(row)] = row
        return array

    def save(self, filename: str) -> None:
        array = self.to_array()
        np.save(filename, array)
        logger.info(f"Saved {array.shape[0]}x{array.shape[1]} matrix to {filename}")


class RegBankDumper(Dumper):
    """Role class for register bank snapshot sinks."""

    def dump(self, regs: Sequence[int]) -> None:
        raise NotImplementedError


class NPYRegBankDumper(RegBankDumper):
    """ Dumps register bank snapshots as a numpy uint64 matrix.

    Each row holds the concatenated snapshots of one trace. The file is
    written by close().
    """
    def __init__(self, filename: str, num_traces: int) -> None:
        super().__init__(bool(filename))
        self.filename = filename
        self.npy = NPYMatrix(num_traces, np.uint64)

    def next_trace(self) -> None:
        if self.enabled():
            self.npy.next()

    def dump(self, regs: Sequence[int]) -> None:
        self.npy.append(regs)

    def close(self) -> None:
        if self.enabled():
            self.npy.save(self.filename)


class MemoryAccessesDumper(Dumper):
    """Role class for memory access sinks."""

    def dump(self, pc: int, accesses: Sequence[MemoryAccess]) -> None:
        raise NotImplementedError


class YAMLMemoryAccessesDumper(MemoryAccessesDumper):
    """ Dumps memory accesses in YAML format.

    Example output:
        memaccess:
          -
            - { pc: 0x1234, loads: [[0x21f5c, 4, 0x3]], stores: [[0xabcde, 2, 0x1234]]}
    """
    def __init__(self, output: Output, enable: Optional[bool] = None) -> None:
        self.out = YAMLStream(output, "memaccess")
        super().__init__(self.out.is_open() if enable is None else enable)

    def next_trace(self) -> None:
        self.out.next_trace()

    def dump(self, pc: int, accesses: Sequence[MemoryAccess]) -> None:
        self.out.emit_trace_separator()
        if not accesses:
            return
        loads = [ma for ma in accesses if ma.is_load()]
        stores = [ma for ma in accesses if ma.is_store()]
        line = f"    - {{ pc: {pc:#x}"
        if loads:
            line += f", loads: {format_accesses(loads)}"
        if stores:
            line += f", stores: {format_accesses(stores)}"
        self.out.write(line + "}\n")

    def flush(self) -> None:
        self.out.flush()

    def close(self) -> None:
        self.out.close()


class InstrDumper(Dumper):
    """ Role class for instruction sinks.

    dump_mem_access and dump_reg_bank select whether the memory accesses and
    the register bank state are dumped along with each instruction.
    """
    def __init__(self, enable: bool, dump_mem_access: bool = False,
                 dump_reg_bank: bool = False) -> None:
        super().__init__(enable)
        self.dump_mem_access = dump_mem_access
        self.dump_reg_bank = dump_reg_bank

    def dump(self, instr: ReferenceInstruction,
             regs: Optional[Sequence[int]] = None) -> None:
        """Dump instr, and regs if register bank dumping is enabled."""
        self.dump_impl(instr, regs if self.dump_reg_bank else None)

    def dump_impl(self, instr: ReferenceInstruction,
                  regs: Optional[Sequence[int]]) -> None:
        raise NotImplementedError


class YAMLInstrDumper(InstrDumper):
    """ Dumps instructions in YAML format.

    Example output:
        instr:
          -
            - { pc: 0x832a, opcode: 0x4408, size: 16, executed: True, disassembly: "add r0,r1"}
    """
    def __init__(self, output: Output, enable: Optional[bool] = None,
                 dump_mem_access: bool = False, dump_reg_bank: bool = False) -> None:
        self.out = YAMLStream(output, "instr")
        super().__init__(self.out.is_open() if enable is None else enable,
                         dump_mem_access, dump_reg_bank)

    def next_trace(self) -> None:
        self.out.next_trace()

    def dump_impl(self, instr: ReferenceInstruction,
                  regs: Optional[Sequence[int]]) -> None:
        self.out.emit_trace_separator()
        disassembly = " ".join(instr.disassembly.split()).replace('"', '\\"')
        line = (f"    - {{ pc: {instr.pc:#x}, opcode: {instr.instruction:#x}, "
                f"size: {instr.width}, executed: {instr.is_executed()}, "
                f"disassembly: \"{disassembly}\"")
        if self.dump_mem_access:
            line += (f", loads: {format_accesses(instr.loads())}"
                     f", stores: {format_accesses(instr.stores())}")
        if regs is not None:
            line += ", regbank: [ " + ", ".join(f"{v:#x}" for v in regs) + "]"
        self.out.write(line + "}\n")

    def flush(self) -> None:
        self.out.flush()

    def close(self) -> None:
        self.out.close()
