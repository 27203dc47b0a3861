# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Power leakage simulation over an executed-instruction trace.

PowerTrace synthesizes one or more power samples per instruction, under a
Hamming weight or Hamming distance model, and hands them over to the power
dumper of each PowerAnalysisConfig. The leakage sources that contribute are
selected with a PowerTraceConfig.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from pafsca.arch import ArchInfo
from pafsca.dumper import (Dumper, InstrDumper, MemoryAccessesDumper, NPYMatrix,
                           Output, OutputStream, RegBankDumper)
from pafsca.leakage_models import hamming_distance, hamming_weight
from pafsca.noise import NoiseKind, get_source
from pafsca.oracle import Oracle
from pafsca.timing import TimingInfo
from pafsca.trace import MemoryAccess, ReferenceInstruction, RegisterAccess

logger = logging.getLogger()


class LeakageSource(enum.IntFlag):
    """The individual leakage sources a PowerTraceConfig can select."""

    WITH_PC = 1 << 0
    WITH_OPCODE = 1 << 1
    WITH_MEM_ADDRESS = 1 << 2
    WITH_MEM_DATA = 1 << 3
    WITH_INSTRUCTIONS_INPUTS = 1 << 4
    WITH_INSTRUCTIONS_OUTPUTS = 1 << 5
    WITH_LOAD_TO_LOAD_TRANSITIONS = 1 << 6
    WITH_STORE_TO_STORE_TRANSITIONS = 1 << 7
    WITH_LAST_MEMORY_ACCESSES_TRANSITIONS = 1 << 8
    WITH_MEMORY_UPDATE_TRANSITIONS = 1 << 9


WITH_ALL = LeakageSource((1 << 10) - 1)
WITH_MEMORY_ACCESS_TRANSITIONS = (LeakageSource.WITH_LOAD_TO_LOAD_TRANSITIONS
                                  | LeakageSource.WITH_STORE_TO_STORE_TRANSITIONS
                                  | LeakageSource.WITH_LAST_MEMORY_ACCESSES_TRANSITIONS
                                  | LeakageSource.WITH_MEMORY_UPDATE_TRANSITIONS)


class PowerTraceConfig:
    """ Selects the leakage sources used for the power simulation.

    A default constructed PowerTraceConfig has all sources enabled. It is a
    plain value: copies never share state.
    """
    WITH_PC = LeakageSource.WITH_PC
    WITH_OPCODE = LeakageSource.WITH_OPCODE
    WITH_MEM_ADDRESS = LeakageSource.WITH_MEM_ADDRESS
    WITH_MEM_DATA = LeakageSource.WITH_MEM_DATA
    WITH_INSTRUCTIONS_INPUTS = LeakageSource.WITH_INSTRUCTIONS_INPUTS
    WITH_INSTRUCTIONS_OUTPUTS = LeakageSource.WITH_INSTRUCTIONS_OUTPUTS
    WITH_LOAD_TO_LOAD_TRANSITIONS = LeakageSource.WITH_LOAD_TO_LOAD_TRANSITIONS
    WITH_STORE_TO_STORE_TRANSITIONS = LeakageSource.WITH_STORE_TO_STORE_TRANSITIONS
    WITH_LAST_MEMORY_ACCESSES_TRANSITIONS = LeakageSource.WITH_LAST_MEMORY_ACCESSES_TRANSITIONS
    WITH_MEMORY_UPDATE_TRANSITIONS = LeakageSource.WITH_MEMORY_UPDATE_TRANSITIONS
    WITH_ALL = WITH_ALL

    def __init__(self, *sources: LeakageSource) -> None:
        self.sources = LeakageSource(0)
        if sources:
            self.set(*sources)
        else:
            self.sources = WITH_ALL

    def clear(self) -> "PowerTraceConfig":
        self.sources = LeakageSource(0)
        return self

    def set(self, *sources: LeakageSource) -> "PowerTraceConfig":
        for source in sources:
            self.sources |= source
        return self

    def copy(self) -> "PowerTraceConfig":
        config = PowerTraceConfig()
        config.sources = self.sources
        return config

    def __eq__(self, other) -> bool:
        return isinstance(other, PowerTraceConfig) and self.sources == other.sources

    def __repr__(self) -> str:
        return f"PowerTraceConfig({self.sources!r})"

    def _has(self, source: LeakageSource) -> bool:
        return bool(self.sources & source)

    def with_all(self) -> bool:
        return self.sources == WITH_ALL

    def with_none(self) -> bool:
        return self.sources == 0

    def with_pc(self) -> bool:
        return self._has(self.WITH_PC)

    def with_opcode(self) -> bool:
        return self._has(self.WITH_OPCODE)

    def with_mem_address(self) -> bool:
        return self._has(self.WITH_MEM_ADDRESS)

    def with_mem_data(self) -> bool:
        return self._has(self.WITH_MEM_DATA)

    def with_instructions_inputs(self) -> bool:
        return self._has(self.WITH_INSTRUCTIONS_INPUTS)

    def with_instructions_outputs(self) -> bool:
        return self._has(self.WITH_INSTRUCTIONS_OUTPUTS)

    def with_load_to_load_transitions(self) -> bool:
        return self._has(self.WITH_LOAD_TO_LOAD_TRANSITIONS)

    def with_store_to_store_transitions(self) -> bool:
        return self._has(self.WITH_STORE_TO_STORE_TRANSITIONS)

    def with_last_memory_access_transitions(self) -> bool:
        return self._has(self.WITH_LAST_MEMORY_ACCESSES_TRANSITIONS)

    def with_memory_update_transitions(self) -> bool:
        return self._has(self.WITH_MEMORY_UPDATE_TRANSITIONS)

    def with_memory_access_transitions(self) -> bool:
        return self._has(WITH_MEMORY_ACCESS_TRANSITIONS)


class PowerDumper(Dumper):
    """ Role class for power sinks.

    dump() is called once per simulated sample. instruction is None for the
    extra samples of a multi-cycle instruction.
    """
    def __init__(self, enable: bool = True) -> None:
        super().__init__(enable)
        self.owner = None

    def dump(self, total: float, pc: float, instr: float, oregs: float,
             iregs: float, addr: float, data: float,
             instruction: Optional[ReferenceInstruction]) -> None:
        raise NotImplementedError


class CSVPowerDumper(PowerDumper):
    """ Dumps the power samples in CSV format.

    When detailed_output is set, each line also describes the instruction
    the sample originates from.
    """
    HEADER = '"Total","PC","Instr","ORegs","IRegs","Addr","Data"'
    DETAILED_HEADER = (',"Time","PC","Instr","Exe","Asm","Memory accesses",'
                       '"Register accesses"')

    def __init__(self, output: Output, detailed_output: bool = False) -> None:
        self.out = OutputStream(output)
        super().__init__(self.out.is_open())
        self.detailed_output = detailed_output

    def pre_dump(self) -> None:
        header = self.HEADER
        if self.detailed_output:
            header += self.DETAILED_HEADER
        self.out.write(header + "\n")

    def next_trace(self) -> None:
        self.out.write("\n")

    def dump(self, total, pc, instr, oregs, iregs, addr, data, instruction) -> None:
        line = ",".join(f"{v:.2f}" for v in (total, pc, instr, oregs, iregs, addr, data))
        if self.detailed_output:
            if instruction is not None:
                mem = " ".join(str(ma) for ma in instruction.mem_access)
                regs = " ".join(str(ra) for ra in instruction.reg_access)
                line += (f",{instruction.time},{instruction.pc:#x},"
                         f"{instruction.instruction:#x},\"{instruction.executed.value}\","
                         f"\"{instruction.disassembly}\",\"{mem}\",\"{regs}\"")
            else:
                line += ',,,,"","","",""'
        self.out.write(line + "\n")

    def flush(self) -> None:
        self.out.flush()

    def close(self) -> None:
        self.out.close()


class NPYPowerDumper(PowerDumper):
    """ Dumps the total power as a numpy float64 matrix, one row per trace.

    The file is written by close().
    """
    def __init__(self, filename: str, num_traces: int) -> None:
        super().__init__(bool(filename))
        self.filename = filename
        self.npy = NPYMatrix(num_traces, np.float64)

    def next_trace(self) -> None:
        if self.enabled():
            self.npy.next()

    def dump(self, total, pc, instr, oregs, iregs, addr, data, instruction) -> None:
        self.npy.append((total,))

    def close(self) -> None:
        if self.enabled():
            self.npy.save(self.filename)


class PowerModel(str, enum.Enum):
    HAMMING_WEIGHT = "hamming_weight"
    HAMMING_DISTANCE = "hamming_distance"


class PowerAnalysisConfig:
    """ One power analysis: a power model, a noise source and the power
    dumper the samples are sent to.

    The power dumper is owned by this PowerAnalysisConfig and can not be
    shared with another one. Noise is enabled by default.
    """
    HAMMING_WEIGHT = PowerModel.HAMMING_WEIGHT
    HAMMING_DISTANCE = PowerModel.HAMMING_DISTANCE

    def __init__(self, model: PowerModel, dumper: PowerDumper,
                 noise_kind: NoiseKind = NoiseKind.ZERO, noise_level: float = 0.0,
                 seed: Optional[int] = None) -> None:
        if dumper.owner is not None:
            raise ValueError("Power dumper is already owned by another PowerAnalysisConfig")
        dumper.owner = self
        self.model = PowerModel(model)
        self.dumper = dumper
        self.noise = get_source(noise_kind, noise_level, seed)
        self.noise_enabled = True

    def set(self, model: PowerModel) -> "PowerAnalysisConfig":
        self.model = PowerModel(model)
        return self

    def set_with_noise(self) -> "PowerAnalysisConfig":
        self.noise_enabled = True
        return self

    def set_without_noise(self) -> "PowerAnalysisConfig":
        self.noise_enabled = False
        return self

    def add_noise(self) -> bool:
        return self.noise_enabled

    def get_noise(self) -> float:
        return self.noise.get_noise()

    def get_power_model(self) -> PowerModel:
        return self.model

    def is_hamming_weight(self) -> bool:
        return self.model == PowerModel.HAMMING_WEIGHT

    def is_hamming_distance(self) -> bool:
        return self.model == PowerModel.HAMMING_DISTANCE

    def get_dumper(self) -> PowerDumper:
        return self.dumper


@dataclass
class Sample:
    """ One simulated power sample of an instruction.

    access is the memory access performed during this sample, outputs and
    inputs the register accesses leaking during this sample.
    """
    index: int
    access: Optional[MemoryAccess]
    outputs: Tuple[RegisterAccess, ...]
    inputs: Tuple[RegisterAccess, ...]


def iter_samples(instr: ReferenceInstruction) -> Iterator[Sample]:
    """Split an instruction in samples, one per memory access.

    Instructions with at most one memory access produce a single sample.
    Written registers are spread over the samples in order, the last sample
    taking any remaining ones. Read registers leak in the first sample.
    """
    accesses = instr.mem_access
    writes = instr.writes()
    num_samples = max(1, len(accesses))
    for idx in range(num_samples):
        if num_samples == 1:
            outputs = writes
        elif idx < num_samples - 1:
            outputs = writes[idx:idx + 1]
        else:
            outputs = writes[idx:]
        yield Sample(index=idx,
                     access=accesses[idx] if accesses else None,
                     outputs=outputs,
                     inputs=instr.reads() if idx == 0 else ())


class MemoryTransitions:
    """ Memory access history used by the transition leakage sources.

    Remembers the last load, the last store and the last access of any kind
    along the trace.
    """
    def __init__(self) -> None:
        self.last_load: Optional[MemoryAccess] = None
        self.last_store: Optional[MemoryAccess] = None
        self.last_access: Optional[MemoryAccess] = None

    def previous_accesses(self, access: MemoryAccess,
                          config: PowerTraceConfig) -> List[Optional[MemoryAccess]]:
        """The accesses access transitions from, one per enabled transition."""
        previous = []
        if config.with_load_to_load_transitions() and access.is_load():
            previous.append(self.last_load)
        if config.with_store_to_store_transitions() and access.is_store():
            previous.append(self.last_store)
        if config.with_last_memory_access_transitions():
            previous.append(self.last_access)
        return previous

    def update(self, access: Optional[MemoryAccess]) -> None:
        if access is None:
            return
        if access.is_load():
            self.last_load = access
        else:
            self.last_store = access
        self.last_access = access


@dataclass
class Leakage:
    """The leakage of one sample, per source."""
    pc: float = 0.0
    instr: float = 0.0
    oregs: float = 0.0
    iregs: float = 0.0
    addr: float = 0.0
    data: float = 0.0
    # Weighted register contribution to the total.
    regs_total: float = 0.0

    def total(self) -> float:
        return (PowerTrace.PC_WEIGHT * self.pc + PowerTrace.OPCODE_WEIGHT * self.instr
                + self.regs_total + PowerTrace.ADDRESS_WEIGHT * self.addr
                + PowerTrace.DATA_WEIGHT * self.data)


class PowerTrace:
    """ An instruction trace under power analysis.

    Instructions are appended with add() and must have strictly increasing
    times. analyze() can be called any number of times.
    """
    # Weights of the leakage sources in the total power.
    PC_WEIGHT = 1.0
    OPCODE_WEIGHT = 1.0
    REGISTER_WEIGHT = 2.0
    STATUS_REGISTER_WEIGHT = 0.5
    ADDRESS_WEIGHT = 1.2
    DATA_WEIGHT = 2.0

    def __init__(self, config: PowerTraceConfig, arch: ArchInfo) -> None:
        self.config = config.copy()
        self.arch = arch
        self.instructions: List[ReferenceInstruction] = []

    def add(self, instr: ReferenceInstruction) -> None:
        if self.instructions and instr.time <= self.instructions[-1].time:
            raise ValueError(f"Instruction time {instr.time} does not follow "
                             f"{self.instructions[-1].time}")
        self.instructions.append(instr)

    def size(self) -> int:
        return len(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, idx: int) -> ReferenceInstruction:
        return self.instructions[idx]

    def __iter__(self):
        return iter(self.instructions)

    def get_arch_info(self) -> ArchInfo:
        return self.arch

    def get_config(self) -> PowerTraceConfig:
        return self.config

    def _register_term(self, ra: RegisterAccess, hamming_weight_model: bool, oracle: Oracle,
                       prior_regs: Optional[Sequence[int]]) -> Tuple[float, float]:
        """Leakage of a register access, unweighted and weighted."""
        if hamming_weight_model:
            value = hamming_weight(ra.value)
        else:
            idx = oracle.register_index(ra.name, self.arch)
            if idx >= len(prior_regs):
                raise IndexError(f"Oracle register bank has no entry for '{ra.name}'")
            value = hamming_distance(ra.value, prior_regs[idx])
        if self.arch.is_status_register(ra.name):
            return value, self.STATUS_REGISTER_WEIGHT * value
        return value, self.REGISTER_WEIGHT * value

    def _leakage(self, pac: PowerAnalysisConfig, instr: ReferenceInstruction,
                 previous: Optional[ReferenceInstruction], sample: Sample,
                 transitions: MemoryTransitions, oracle: Oracle,
                 prior_regs: Optional[Sequence[int]]) -> Leakage:
        cfg = self.config
        hw_model = pac.is_hamming_weight()
        leakage = Leakage()

        if cfg.with_pc():
            leakage.pc = (hamming_weight(instr.pc) if hw_model else
                          hamming_distance(instr.pc, previous.pc if previous else 0))
        if cfg.with_opcode():
            leakage.instr = (hamming_weight(instr.instruction) if hw_model else
                             hamming_distance(instr.instruction,
                                              previous.instruction if previous else 0))

        if cfg.with_instructions_outputs():
            for ra in sample.outputs:
                value, weighted = self._register_term(ra, hw_model, oracle, prior_regs)
                leakage.oregs += value
                leakage.regs_total += weighted
        # Instruction inputs do not leak in the Hamming distance model.
        if cfg.with_instructions_inputs() and hw_model:
            for ra in sample.inputs:
                value, weighted = self._register_term(ra, hw_model, oracle, prior_regs)
                leakage.iregs += value
                leakage.regs_total += weighted

        access = sample.access
        if access is None:
            return leakage
        if hw_model:
            if cfg.with_mem_address():
                leakage.addr = hamming_weight(access.address)
            if cfg.with_mem_data():
                leakage.data = hamming_weight(access.value)
            return leakage

        for prev in transitions.previous_accesses(access, cfg):
            if cfg.with_mem_address():
                leakage.addr += hamming_distance(access.address, prev.address if prev else 0)
            if cfg.with_mem_data():
                leakage.data += hamming_distance(access.value, prev.value if prev else 0)
        if cfg.with_memory_update_transitions() and cfg.with_mem_data() and access.is_store():
            leakage.data += hamming_distance(
                access.value, oracle.get_memory_state(access.address, access.size, instr.time - 1))
        return leakage

    def analyze(self, configs: Sequence[PowerAnalysisConfig], oracle: Oracle,
                timing: TimingInfo, reg_bank_dumper: RegBankDumper,
                mem_access_dumper: MemoryAccessesDumper,
                instr_dumper: InstrDumper) -> None:
        """Simulate the power of this trace for each of configs.

        The dumpers are only borrowed for the duration of the call. Their
        next_trace() is left to the caller.
        """
        if not self.instructions:
            return

        side_dumpers = (reg_bank_dumper, mem_access_dumper, instr_dumper)
        for pac in configs:
            pac.get_dumper().pre_dump()
        for dumper in side_dumpers:
            dumper.pre_dump()

        need_prior_regs = self.config.with_instructions_outputs() and any(
            pac.is_hamming_distance() for pac in configs)
        dump_regs = reg_bank_dumper.enabled() or (instr_dumper.enabled()
                                                  and instr_dumper.dump_reg_bank)

        transitions = MemoryTransitions()
        previous = None
        for instr in self.instructions:
            timing.add(instr.pc, self.arch.get_cycles(instr, previous))

            regs = oracle.get_reg_bank_state(instr.time) if dump_regs else None
            if reg_bank_dumper.enabled():
                reg_bank_dumper.dump(regs)
            if instr_dumper.enabled():
                instr_dumper.dump(instr, regs)
            if mem_access_dumper.enabled():
                mem_access_dumper.dump(instr.pc, instr.mem_access)

            prior_regs = oracle.get_reg_bank_state(instr.time - 1) if need_prior_regs else None
            for sample in iter_samples(instr):
                for pac in configs:
                    dumper = pac.get_dumper()
                    if not dumper.enabled():
                        continue
                    leakage = self._leakage(pac, instr, previous, sample, transitions,
                                            oracle, prior_regs)
                    total = leakage.total()
                    if pac.add_noise():
                        total += pac.get_noise()
                    dumper.dump(total, leakage.pc, leakage.instr, leakage.oregs,
                                leakage.iregs, leakage.addr, leakage.data,
                                instr if sample.index == 0 else None)
                transitions.update(sample.access)
            previous = instr

        for pac in configs:
            pac.get_dumper().post_dump()
        for dumper in side_dumpers:
            dumper.post_dump()
        logger.debug(f"Analyzed {len(self.instructions)} instructions with "
                     f"{len(configs)} power model(s)")
