# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0

import io

import numpy as np
import pytest
from instr_data import INSTS, INSTS2

from pafsca.arch import V7MInfo
from pafsca.dumper import (InstrDumper, MemoryAccessesDumper, NPYRegBankDumper,
                           RegBankDumper)
from pafsca.noise import NoiseKind
from pafsca.oracle import Oracle, TraceOracle
from pafsca.power import (CSVPowerDumper, NPYPowerDumper, PowerAnalysisConfig, PowerDumper,
                          PowerModel, PowerTrace, PowerTraceConfig, iter_samples)
from pafsca.timing import TimingInfo
from pafsca.trace import AccessType, ExecutionState, ReferenceInstruction, RegisterAccess

HW = PowerAnalysisConfig.HAMMING_WEIGHT
HD = PowerAnalysisConfig.HAMMING_DISTANCE


class ListPowerDumper(PowerDumper):
    """Records the power samples: (total, pc, instr, oregs, iregs, addr, data, instruction)."""

    def __init__(self, enable: bool = True) -> None:
        super().__init__(enable)
        self.samples = []
        self.pre = 0
        self.post = 0

    def pre_dump(self):
        self.pre += 1

    def post_dump(self):
        self.post += 1

    def dump(self, total, pc, instr, oregs, iregs, addr, data, instruction):
        self.samples.append((total, pc, instr, oregs, iregs, addr, data, instruction))


class ListRegBankDumper(RegBankDumper):
    def __init__(self, enable: bool = True) -> None:
        super().__init__(enable)
        self.snapshots = []

    def dump(self, regs):
        self.snapshots.append(list(regs))


class ListMemoryAccessesDumper(MemoryAccessesDumper):
    def __init__(self, enable: bool = True) -> None:
        super().__init__(enable)
        self.entries = []

    def dump(self, pc, accesses):
        self.entries.append((pc, list(accesses)))


class ListInstrDumper(InstrDumper):
    def __init__(self, enable: bool = True, dump_reg_bank: bool = False) -> None:
        super().__init__(enable, dump_reg_bank=dump_reg_bank)
        self.entries = []

    def dump_impl(self, instr, regs):
        self.entries.append((instr, regs))


class FixedOracle(Oracle):
    """Fixed register bank, and per (address, time) memory content."""

    def __init__(self, regs=None, memory=None):
        super().__init__(18, 0)
        self.regs = list(regs) if regs is not None else [0] * 18
        self.memory = memory or {}

    def get_reg_bank_state(self, t):
        return list(self.regs)

    def get_memory_state(self, address, size, t):
        return self.memory.get((address, t), 0)


def make_trace(insts, config=None):
    trace = PowerTrace(config if config is not None else PowerTraceConfig(), V7MInfo())
    for instr in insts:
        trace.add(instr)
    return trace


def run(insts, config, model, oracle=None):
    """Analyze insts and return the recorded power samples."""
    dumper = ListPowerDumper()
    pac = PowerAnalysisConfig(model, dumper)
    make_trace(insts, config).analyze([pac], oracle or Oracle(), TimingInfo(),
                                      ListRegBankDumper(False),
                                      ListMemoryAccessesDumper(False), ListInstrDumper(False))
    return dumper.samples


def totals(samples):
    return [s[0] for s in samples]


def column(samples, idx):
    return [s[idx] for s in samples]


def test_config_default_has_all_sources():
    cfg = PowerTraceConfig()
    assert cfg.with_all()
    assert cfg.with_pc() and cfg.with_memory_update_transitions()
    assert not cfg.with_none()


def test_config_clear_and_set():
    cfg = PowerTraceConfig().clear()
    assert cfg.with_none()
    assert not cfg.with_pc()
    cfg.set(PowerTraceConfig.WITH_PC).set(PowerTraceConfig.WITH_MEM_DATA)
    assert cfg.with_pc() and cfg.with_mem_data()
    assert not cfg.with_opcode()
    assert not cfg.with_memory_access_transitions()
    cfg.set(PowerTraceConfig.WITH_STORE_TO_STORE_TRANSITIONS)
    assert cfg.with_memory_access_transitions()
    assert cfg.with_store_to_store_transitions()
    assert not cfg.with_load_to_load_transitions()


def test_config_from_flags():
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_OPCODE,
                           PowerTraceConfig.WITH_INSTRUCTIONS_INPUTS)
    assert cfg.with_opcode() and cfg.with_instructions_inputs()
    assert not cfg.with_pc() and not cfg.with_instructions_outputs()
    assert cfg == PowerTraceConfig().clear().set(PowerTraceConfig.WITH_OPCODE,
                                                 PowerTraceConfig.WITH_INSTRUCTIONS_INPUTS)


def test_config_is_a_value():
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_PC)
    other = cfg.copy()
    other.set(PowerTraceConfig.WITH_OPCODE)
    assert not cfg.with_opcode()
    assert cfg != other

    trace = PowerTrace(cfg, V7MInfo())
    cfg.set(PowerTraceConfig.WITH_MEM_DATA)
    assert not trace.get_config().with_mem_data()


def test_analysis_config():
    pac = PowerAnalysisConfig(HW, ListPowerDumper(), NoiseKind.ZERO, 1.0)
    assert pac.add_noise()
    assert pac.get_noise() == 0.0
    assert pac.is_hamming_weight() and not pac.is_hamming_distance()

    pac = PowerAnalysisConfig(HD, ListPowerDumper(), NoiseKind.CONSTANT, 3.0)
    assert pac.is_hamming_distance()
    assert pac.get_noise() == 3.0
    assert pac.get_power_model() == PowerModel.HAMMING_DISTANCE
    pac.set(HW)
    assert pac.is_hamming_weight()
    assert not pac.set_without_noise().add_noise()
    assert pac.set_with_noise().add_noise()


def test_analysis_config_owns_its_dumper():
    dumper = ListPowerDumper()
    pac = PowerAnalysisConfig(HW, dumper)
    assert pac.get_dumper() is dumper
    with pytest.raises(ValueError):
        PowerAnalysisConfig(HD, dumper)


def test_add_requires_increasing_time():
    trace = make_trace(INSTS[:2])
    assert len(trace) == 2 and trace.size() == 2
    assert trace[1] is INSTS[1]
    assert list(trace) == INSTS[:2]
    with pytest.raises(ValueError):
        trace.add(INSTS[0])
    with pytest.raises(ValueError):
        trace.add(INSTS[1])


def test_moved_trace_stays_usable():
    trace = make_trace(INSTS)
    moved = trace
    del trace
    assert len(moved) == len(INSTS)
    assert moved.get_arch_info().description() == "Arm V7M ISA"
    assert totals(run(list(moved), PowerTraceConfig(), HW)) == pytest.approx(
        [17, 22, 34, 28, 40, 65.6])


def test_samples_of_multi_access_instruction():
    samples = list(iter_samples(INSTS[3]))
    assert len(samples) == 2
    assert [s.access for s in samples] == list(INSTS[3].mem_access)
    assert [ra.name for ra in samples[0].outputs] == ["r3"]
    assert [ra.name for ra in samples[1].outputs] == ["r4"]
    assert len(list(iter_samples(INSTS[0]))) == 1


def test_hamming_weight_all_sources():
    samples = run(INSTS, PowerTraceConfig(), HW)
    expected = [
        (17, 8, 4, 4, 0, 0, 0, INSTS[0]),
        (22, 9, 5, 2, 2, 0, 0, INSTS[1]),
        (34, 6, 12, 0, 0, 10, 2, INSTS[2]),
        (28, 6, 12, 0, 0, 5, 2, None),
        (40, 6, 14, 2, 0, 10, 2, INSTS[3]),
        (65.6, 6, 14, 9, 0, 8, 9, None),
    ]
    assert len(samples) == len(expected)
    for received, exp in zip(samples, expected):
        assert received[0] == pytest.approx(exp[0])
        assert received[1:7] == exp[1:7]
        assert received[7] is exp[7]


@pytest.mark.parametrize("source, expected_totals, idx, expected_facet", [
    (PowerTraceConfig.WITH_PC, [8, 9, 6, 6, 6, 6], 1, [8, 9, 6, 6, 6, 6]),
    (PowerTraceConfig.WITH_OPCODE, [4, 5, 12, 12, 14, 14], 2, [4, 5, 12, 12, 14, 14]),
    (PowerTraceConfig.WITH_INSTRUCTIONS_OUTPUTS, [5, 4, 0, 0, 4, 18], 3, [4, 2, 0, 0, 2, 9]),
    (PowerTraceConfig.WITH_INSTRUCTIONS_INPUTS, [0, 4, 0, 0, 0, 0], 4, [0, 2, 0, 0, 0, 0]),
    (PowerTraceConfig.WITH_MEM_ADDRESS, [0, 0, 12, 6, 12, 9.6], 5, [0, 0, 10, 5, 10, 8]),
    (PowerTraceConfig.WITH_MEM_DATA, [0, 0, 4, 4, 4, 18], 6, [0, 0, 2, 2, 2, 9]),
])
def test_hamming_weight_per_source(source, expected_totals, idx, expected_facet):
    samples = run(INSTS, PowerTraceConfig(source), HW)
    assert totals(samples) == pytest.approx(expected_totals)
    assert column(samples, idx) == expected_facet


def test_hamming_weight_ignores_transitions():
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_DATA,
                           PowerTraceConfig.WITH_LAST_MEMORY_ACCESSES_TRANSITIONS)
    assert totals(run(INSTS, cfg, HW)) == pytest.approx([0, 0, 4, 4, 4, 18])


def test_hamming_distance_pc():
    samples = run(INSTS, PowerTraceConfig(PowerTraceConfig.WITH_PC), HD)
    assert column(samples, 1) == [8, 1, 5, 5, 2, 2]
    assert totals(samples) == pytest.approx([8, 1, 5, 5, 2, 2])


def test_hamming_distance_opcode():
    samples = run(INSTS, PowerTraceConfig(PowerTraceConfig.WITH_OPCODE), HD)
    assert column(samples, 2) == [4, 9, 13, 13, 8, 8]


def test_hamming_distance_outputs():
    regs = [0] * 18
    regs[2] = 3
    samples = run(INSTS, PowerTraceConfig(PowerTraceConfig.WITH_INSTRUCTIONS_OUTPUTS), HD,
                  FixedOracle(regs))
    assert totals(samples) == pytest.approx([5, 4, 0, 0, 4, 18])
    assert column(samples, 3) == [4, 2, 0, 0, 2, 9]


def test_hamming_distance_outputs_with_trace_oracle():
    # Prior values come from the previous instruction.
    oracle = TraceOracle(INSTS2, V7MInfo())
    samples = run(INSTS2, PowerTraceConfig(PowerTraceConfig.WITH_INSTRUCTIONS_OUTPUTS), HD,
                  oracle)
    # r0: 0 -> 0xdeadbeef -> 0xdeadbef4 -> 0xdeadbef4 -> 0xdeadbef9
    assert column(samples, 3) == [4, 24, 4, 0, 0, 3, 0]


def movs(time, pc, reg, value):
    return ReferenceInstruction(time, ExecutionState.EXECUTED, pc, "THUMB", 16, 0x2000 | value,
                                f"movs {reg},#{value}", [],
                                [RegisterAccess(reg, value, AccessType.WRITE)])


@pytest.mark.parametrize("arch", [None, V7MInfo()])
def test_hamming_distance_outputs_trace_oracle_layout(arch):
    # r1 is written first, r0 must still be looked up at its own index.
    insts = [movs(1, 0x100, "r1", 0xff), movs(2, 0x102, "r0", 0), movs(3, 0x104, "r0", 0)]
    samples = run(insts, PowerTraceConfig(PowerTraceConfig.WITH_INSTRUCTIONS_OUTPUTS), HD,
                  TraceOracle(insts, arch))
    assert column(samples, 3) == [8, 0, 0]


def test_hamming_distance_outputs_trace_oracle_without_arch():
    insts = [movs(1, 0x100, "r3", 5)]
    samples = run(insts, PowerTraceConfig(PowerTraceConfig.WITH_INSTRUCTIONS_OUTPUTS), HD,
                  TraceOracle(insts))
    assert column(samples, 3) == [2]


def test_hamming_distance_ignores_inputs():
    samples = run(INSTS, PowerTraceConfig(PowerTraceConfig.WITH_INSTRUCTIONS_INPUTS), HD)
    assert totals(samples) == [0] * 6
    assert column(samples, 4) == [0] * 6


def test_hamming_distance_without_transitions():
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_ADDRESS, PowerTraceConfig.WITH_MEM_DATA)
    assert totals(run(INSTS, cfg, HD)) == [0] * 6


def test_hamming_distance_last_access_address():
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_ADDRESS,
                           PowerTraceConfig.WITH_LAST_MEMORY_ACCESSES_TRANSITIONS)
    samples = run(INSTS, cfg, HD)
    assert column(samples, 5) == [0, 0, 10, 7, 5, 4]
    assert totals(samples) == pytest.approx([0, 0, 12, 8.4, 6, 4.8])


def test_hamming_distance_last_access_data():
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_DATA,
                           PowerTraceConfig.WITH_LAST_MEMORY_ACCESSES_TRANSITIONS)
    samples = run(INSTS, cfg, HD)
    assert column(samples, 6) == [0, 0, 2, 0, 2, 11]
    assert totals(samples) == pytest.approx([0, 0, 4, 0, 4, 22])


def test_hamming_distance_load_and_store_transitions():
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_ADDRESS,
                           PowerTraceConfig.WITH_LOAD_TO_LOAD_TRANSITIONS,
                           PowerTraceConfig.WITH_STORE_TO_STORE_TRANSITIONS)
    samples = run(INSTS2, cfg, HD)
    assert column(samples, 5) == [0, 14, 0, 17, 5, 0, 5]
    assert totals(samples) == pytest.approx([0, 16.8, 0, 20.4, 6, 0, 6])

    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_DATA,
                           PowerTraceConfig.WITH_LOAD_TO_LOAD_TRANSITIONS,
                           PowerTraceConfig.WITH_STORE_TO_STORE_TRANSITIONS)
    samples = run(INSTS2, cfg, HD)
    assert column(samples, 6) == [0, 24, 0, 22, 4, 0, 3]
    assert totals(samples) == pytest.approx([0, 48, 0, 44, 8, 0, 6])


def test_hamming_distance_memory_update():
    oracle = FixedOracle(memory={(0xf939b3c, 29): 0x00cafe00, (0xf939b40, 32): 0xdeadbeef})
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_DATA,
                           PowerTraceConfig.WITH_MEMORY_UPDATE_TRANSITIONS)
    samples = run(INSTS2, cfg, HD, oracle)
    assert column(samples, 6) == [0, 0, 0, 17, 0, 0, 3]
    assert totals(samples) == pytest.approx([0, 0, 0, 34, 0, 0, 6])


def test_memory_update_needs_mem_data():
    oracle = FixedOracle(memory={(0xf939b3c, 29): 0x00cafe00})
    cfg = PowerTraceConfig(PowerTraceConfig.WITH_MEM_ADDRESS,
                           PowerTraceConfig.WITH_MEMORY_UPDATE_TRANSITIONS)
    assert totals(run(INSTS2, cfg, HD, oracle)) == [0] * 7


def test_analyze_empty_trace():
    dumper = ListPowerDumper()
    regbank = ListRegBankDumper()
    timing = TimingInfo()
    PowerTrace(PowerTraceConfig(), V7MInfo()).analyze(
        [PowerAnalysisConfig(HW, dumper)], Oracle(), timing, regbank,
        ListMemoryAccessesDumper(), ListInstrDumper())
    assert dumper.pre == 0 and dumper.post == 0
    assert dumper.samples == []
    assert regbank.snapshots == []
    assert timing.locations() == []


def test_analyze_side_dumpers():
    dumper = ListPowerDumper()
    regbank = ListRegBankDumper()
    memaccess = ListMemoryAccessesDumper()
    instrs = ListInstrDumper(dump_reg_bank=True)
    timing = TimingInfo()
    make_trace(INSTS).analyze([PowerAnalysisConfig(HW, dumper)], TraceOracle(INSTS), timing,
                              regbank, memaccess, instrs)

    assert dumper.pre == 1 and dumper.post == 1
    assert regbank.snapshots == [
        [5, 0x21000000, 0, 0, 0],
        [5, 0x21000000, 5, 0, 0],
        [5, 0x21000000, 5, 0, 0],
        [5, 0x21000000, 5, 3, 139108],
    ]
    assert [pc for pc, _ in memaccess.entries] == [i.pc for i in INSTS]
    assert memaccess.entries[3][1] == list(INSTS[3].mem_access)
    assert [i for i, _ in instrs.entries] == INSTS
    assert instrs.entries[0][1] == [5, 0x21000000, 0, 0, 0]
    assert timing.locations() == [(0x89bc, 0), (0x89be, 1), (0x8326, 2), (0x832a, 4)]


def test_analyze_skips_disabled_dumpers():
    enabled = ListPowerDumper()
    disabled = ListPowerDumper(False)
    regbank = ListRegBankDumper(False)
    instrs = ListInstrDumper(False)
    make_trace(INSTS).analyze([PowerAnalysisConfig(HW, enabled),
                               PowerAnalysisConfig(HD, disabled)],
                              TraceOracle(INSTS), TimingInfo(), regbank,
                              ListMemoryAccessesDumper(False), instrs)
    assert len(enabled.samples) == 6
    assert disabled.samples == []
    assert regbank.snapshots == []
    assert instrs.entries == []


def test_analyze_several_models():
    hw = ListPowerDumper()
    hd = ListPowerDumper()
    make_trace(INSTS, PowerTraceConfig(PowerTraceConfig.WITH_PC)).analyze(
        [PowerAnalysisConfig(HW, hw), PowerAnalysisConfig(HD, hd)], Oracle(), TimingInfo(),
        ListRegBankDumper(False), ListMemoryAccessesDumper(False), ListInstrDumper(False))
    assert totals(hw.samples) == [8, 9, 6, 6, 6, 6]
    assert totals(hd.samples) == [8, 1, 5, 5, 2, 2]


def test_noise_is_added_to_total():
    dumper = ListPowerDumper()
    pac = PowerAnalysisConfig(HW, dumper, NoiseKind.CONSTANT, 1.5)
    make_trace(INSTS, PowerTraceConfig(PowerTraceConfig.WITH_PC)).analyze(
        [pac], Oracle(), TimingInfo(), ListRegBankDumper(False),
        ListMemoryAccessesDumper(False), ListInstrDumper(False))
    assert totals(dumper.samples) == pytest.approx([9.5, 10.5, 7.5, 7.5, 7.5, 7.5])
    # Facets are never noisy.
    assert column(dumper.samples, 1) == [8, 9, 6, 6, 6, 6]

    dumper = ListPowerDumper()
    pac = PowerAnalysisConfig(HW, dumper, NoiseKind.CONSTANT, 1.5).set_without_noise()
    make_trace(INSTS, PowerTraceConfig(PowerTraceConfig.WITH_PC)).analyze(
        [pac], Oracle(), TimingInfo(), ListRegBankDumper(False),
        ListMemoryAccessesDumper(False), ListInstrDumper(False))
    assert totals(dumper.samples) == [8, 9, 6, 6, 6, 6]


def test_seeded_noise_is_reproducible():
    results = []
    for _ in range(2):
        dumper = ListPowerDumper()
        pac = PowerAnalysisConfig(HW, dumper, NoiseKind.NORMAL, 0.5, seed=1234)
        make_trace(INSTS).analyze([pac], Oracle(), TimingInfo(), ListRegBankDumper(False),
                                  ListMemoryAccessesDumper(False), ListInstrDumper(False))
        results.append(totals(dumper.samples))
    assert results[0] == results[1]
    assert results[0] != pytest.approx([17, 22, 34, 28, 40, 65.6])


def test_csv_power_dumper():
    out = io.StringIO()
    csv = CSVPowerDumper(out, False)
    assert csv.enabled()
    csv.pre_dump()
    assert out.getvalue() == '"Total","PC","Instr","ORegs","IRegs","Addr","Data"\n'
    csv.dump(1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, INSTS[0])
    csv.next_trace()
    assert out.getvalue().endswith("1.00,2.00,3.00,4.00,5.00,6.00,7.00\n\n")


def test_csv_power_dumper_detailed():
    out = io.StringIO()
    csv = CSVPowerDumper(out, True)
    csv.pre_dump()
    csv.dump(1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, INSTS[0])
    csv.dump(2.0, 4.0, 6.0, 8.0, 10.0, 12.0, 14.0, INSTS[2])
    csv.dump(1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, None)
    lines = out.getvalue().splitlines()
    assert lines[0] == ('"Total","PC","Instr","ORegs","IRegs","Addr","Data","Time","PC",'
                        '"Instr","Exe","Asm","Memory accesses","Register accesses"')
    assert lines[1] == ('1.00,2.00,3.00,4.00,5.00,6.00,7.00,27,0x89bc,0x2105,"X",'
                        '"MOVS r1,#5","","W(0x5)@r1 W(0x21000000)@cpsr"')
    assert lines[2] == ('2.00,4.00,6.00,8.00,10.00,12.00,14.00,29,0x8326,0xe9425504,"X",'
                        '"STRD r5,r1,[r2,#-0x10]","W4(0x5)@0x21afc W4(0x5)@0x21b00",""')
    assert lines[3] == '1.00,2.00,3.00,4.00,5.00,6.00,7.00,,,,"","","",""'


def test_csv_power_dumper_to_file(tmp_path):
    filename = tmp_path / "power.csv"
    with CSVPowerDumper(str(filename)) as csv:
        csv.pre_dump()
        csv.dump(1.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, None)
    assert filename.read_text().splitlines()[1] == "1.00,1.00,0.00,0.00,0.00,0.00,0.00"
    assert not CSVPowerDumper("").enabled()


def test_npy_power_dumper(tmp_path):
    filename = str(tmp_path / "power.npy")
    npy = NPYPowerDumper(filename, 2)
    for total in (1.0, 2.0):
        npy.dump(total, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, None)
        npy.next_trace()
    npy.close()
    power = np.load(filename)
    assert power.shape == (2, 1)
    assert power.dtype == np.float64
    assert power.itemsize == 8
    for row in range(2):
        assert power[row, 0] == row + 1


def test_npy_power_dumper_pads_short_traces(tmp_path):
    filename = str(tmp_path / "power.npy")
    with NPYPowerDumper(filename, 2) as npy:
        for total in (1.0, 2.0, 3.0):
            npy.dump(total, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, None)
        npy.next_trace()
        npy.dump(4.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, None)
        npy.next_trace()
    assert np.array_equal(np.load(filename), [[1.0, 2.0, 3.0], [4.0, 0.0, 0.0]])


def test_npy_dumpers_over_several_traces(tmp_path):
    power_file = str(tmp_path / "power.npy")
    regbank_file = str(tmp_path / "regbank.npy")
    power = NPYPowerDumper(power_file, 2)
    regbank = NPYRegBankDumper(regbank_file, 2)
    pac = PowerAnalysisConfig(HW, power)
    oracle = TraceOracle(INSTS)
    for _ in range(2):
        make_trace(INSTS).analyze([pac], oracle, TimingInfo(), regbank,
                                  ListMemoryAccessesDumper(False), ListInstrDumper(False))
        power.next_trace()
        regbank.next_trace()
    power.close()
    regbank.close()

    totals_npy = np.load(power_file)
    assert totals_npy.shape == (2, 6)
    assert totals_npy[1] == pytest.approx([17, 22, 34, 28, 40, 65.6])
    regs = np.load(regbank_file)
    assert regs.shape == (2, 20)
    assert regs.dtype == np.uint64
    assert list(regs[0, 15:]) == [5, 0x21000000, 5, 3, 139108]
