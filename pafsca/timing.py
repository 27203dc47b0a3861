# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Cycle accounting across traces."""

import math
from pathlib import Path
from typing import List, Optional, TextIO, Tuple, Union


class TimingInfo:
    """ Cycle cost bookkeeping.

    Tracks a cycle counter for the trace being processed, the minimum, maximum
    and average cycle count over all completed traces, and the (address,
    cycle) locations of the very first trace. Later traces never overwrite
    those locations.
    """
    def __init__(self) -> None:
        self.cur_cycle = 0
        self.num_traces = 0
        self.cmin: Optional[int] = None
        self.cmax = 0
        self.cave = 0.0
        self.pc_cycle: List[Tuple[int, int]] = []

    def add(self, address: int, cycles: int) -> None:
        """Record that the instruction at address starts at the current cycle
        and takes cycles cycles."""
        if self.num_traces == 0:
            self.pc_cycle.append((address, self.cur_cycle))
        self.cur_cycle += cycles

    def incr(self, cycles: int) -> None:
        """Spend cycles cycles not associated with any address."""
        self.cur_cycle += cycles

    def next_trace(self) -> None:
        """Fold the current trace into the statistics and start a new one."""
        if self.cmin is None or self.cur_cycle < self.cmin:
            self.cmin = self.cur_cycle
        self.cmax = max(self.cmax, self.cur_cycle)
        self.num_traces += 1
        self.cave += (self.cur_cycle - self.cave) / self.num_traces
        self.cur_cycle = 0

    def minimum(self) -> Optional[int]:
        return self.cmin

    def maximum(self) -> int:
        return self.cmax

    def average(self) -> float:
        return self.cave

    def locations(self) -> List[Tuple[int, int]]:
        return self.pc_cycle

    def save(self, stream: TextIO) -> None:
        raise NotImplementedError

    def save_to_file(self, filename: Union[str, Path]) -> None:
        with open(filename, "w") as f:
            self.save(f)


class YAMLTimingInfo(TimingInfo):
    """ TimingInfo saved in YAML format.

    Example output:
        timing:
          min: 8
          ave: 8
          max: 8
          cycles: [ [ 0x7b, 0 ], [ 0x7c, 2 ], [ 0x7d, 3 ] ]
    """
    def save(self, stream: TextIO) -> None:
        cmin = self.cmin if self.cmin is not None else 0
        cycles = ", ".join(f"[ {addr:#x}, {cycle} ]" for addr, cycle in self.pc_cycle)
        stream.write("timing:\n")
        stream.write(f"  min: {cmin}\n")
        stream.write(f"  ave: {int(math.floor(self.cave + 0.5))}\n")
        stream.write(f"  max: {self.cmax}\n")
        stream.write(f"  cycles: [ {cycles} ]\n")
