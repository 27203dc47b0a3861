# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""YAML configuration of a power analysis campaign.

Example configuration:

    arch: v7m
    num_traces: 16
    leakage: [pc, opcode, instructions_outputs, mem_data]
    models:
      - model: hamming_weight
        noise: normal
        noise_level: 0.5
        seed: 42
        output: power_hw.npy
        format: npy
      - model: hamming_distance
        output: power_hd.csv
        format: csv
        detailed: true
    regbank: regbank.npy
    memaccess: memaccess.yml
    instr: instr.yml
    instr_memaccess: true
    instr_regbank: true
    timing: timing.yml
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml

from pafsca.arch import ArchInfo, get_arch_info
from pafsca.dumper import (InstrDumper, MemoryAccessesDumper, NPYRegBankDumper,
                           RegBankDumper, YAMLInstrDumper, YAMLMemoryAccessesDumper)
from pafsca.noise import NoiseKind
from pafsca.oracle import Oracle
from pafsca.power import (CSVPowerDumper, LeakageSource, NPYPowerDumper,
                          PowerAnalysisConfig, PowerDumper, PowerModel, PowerTrace,
                          PowerTraceConfig)
from pafsca.timing import TimingInfo, YAMLTimingInfo

logger = logging.getLogger()


@dataclass
class ModelConfig:
    """ Power model configuration.
    One PowerAnalysisConfig is built per ModelConfig.
    """
    model: str = PowerModel.HAMMING_WEIGHT.value
    noise: str = NoiseKind.ZERO.value
    noise_level: float = 0.0
    seed: Optional[int] = None
    output: str = ""
    format: str = "npy"
    detailed: bool = False


@dataclass
class AnalysisConfig:
    """ Analysis configuration.
    Empty output filenames disable the corresponding dumper.
    """
    arch: str = "v7m"
    leakage: Union[str, List[str]] = "all"
    models: List[ModelConfig] = field(default_factory=list)
    regbank: str = ""
    memaccess: str = ""
    instr: str = ""
    instr_memaccess: bool = False
    instr_regbank: bool = False
    timing: str = ""
    num_traces: int = 1


def parse_config(cfg: dict) -> AnalysisConfig:
    """Build an AnalysisConfig from the dictionary loaded from a YAML file."""
    cfg = dict(cfg or {})
    models = [ModelConfig(**m) for m in cfg.pop("models", None) or []]
    try:
        return AnalysisConfig(models=models, **cfg)
    except TypeError as e:
        raise ValueError(f"Invalid analysis configuration: {e}") from None


def load_config(path: Union[str, Path]) -> AnalysisConfig:
    with open(path) as f:
        return parse_config(yaml.safe_load(f))


def leakage_sources(names: Union[str, List[str]]) -> PowerTraceConfig:
    """Build a PowerTraceConfig from leakage source names, e.g. "mem_data".

    "all" selects every leakage source.
    """
    if isinstance(names, str):
        names = [names]
    config = PowerTraceConfig().clear()
    for name in names:
        if name.lower() == "all":
            config.set(PowerTraceConfig.WITH_ALL)
            continue
        try:
            config.set(LeakageSource["WITH_" + name.upper()])
        except KeyError:
            raise ValueError(f"Unknown leakage source: {name}") from None
    return config


def power_dumper(model_cfg: ModelConfig, num_traces: int) -> PowerDumper:
    if model_cfg.format == "npy":
        return NPYPowerDumper(model_cfg.output, num_traces)
    elif model_cfg.format == "csv":
        return CSVPowerDumper(model_cfg.output, model_cfg.detailed)
    raise ValueError(f"Unsupported power output format: {model_cfg.format}")


class Analysis:
    """ A configured power analysis campaign.

    Drives every trace through PowerTrace.analyze() with the same power
    models and dumpers, and writes the outputs on close().
    """
    def __init__(self, arch: ArchInfo, trace_config: PowerTraceConfig,
                 power_configs: List[PowerAnalysisConfig], reg_bank_dumper: RegBankDumper,
                 mem_access_dumper: MemoryAccessesDumper, instr_dumper: InstrDumper,
                 timing: TimingInfo, timing_file: str = "") -> None:
        self.arch = arch
        self.trace_config = trace_config
        self.power_configs = power_configs
        self.reg_bank_dumper = reg_bank_dumper
        self.mem_access_dumper = mem_access_dumper
        self.instr_dumper = instr_dumper
        self.timing = timing
        self.timing_file = timing_file

    def dumpers(self):
        return [pac.get_dumper() for pac in self.power_configs] + [
            self.reg_bank_dumper, self.mem_access_dumper, self.instr_dumper]

    def new_trace(self) -> PowerTrace:
        return PowerTrace(self.trace_config, self.arch)

    def analyze(self, trace: PowerTrace, oracle: Oracle) -> None:
        """Analyze trace, then move all dumpers to the next trace."""
        trace.analyze(self.power_configs, oracle, self.timing, self.reg_bank_dumper,
                      self.mem_access_dumper, self.instr_dumper)
        for dumper in self.dumpers():
            dumper.next_trace()
        self.timing.next_trace()

    def close(self) -> None:
        for dumper in self.dumpers():
            dumper.close()
        if self.timing_file:
            self.timing.save_to_file(self.timing_file)
            logger.info(f"Saved timing information to {self.timing_file}")


def build_analysis(cfg: AnalysisConfig) -> Analysis:
    """Instantiate the engine objects described by cfg."""
    arch = get_arch_info(cfg.arch)
    power_configs = []
    for model_cfg in cfg.models:
        try:
            model = PowerModel(model_cfg.model)
            noise = NoiseKind(model_cfg.noise)
        except ValueError as e:
            raise ValueError(f"Invalid model configuration: {e}") from None
        power_configs.append(PowerAnalysisConfig(model,
                                                 power_dumper(model_cfg, cfg.num_traces),
                                                 noise, model_cfg.noise_level,
                                                 model_cfg.seed))
    logger.info(f"Configured {len(power_configs)} power model(s) for {arch.description()}")
    return Analysis(arch, leakage_sources(cfg.leakage), power_configs,
                    NPYRegBankDumper(cfg.regbank, cfg.num_traces),
                    YAMLMemoryAccessesDumper(cfg.memaccess),
                    YAMLInstrDumper(cfg.instr, dump_mem_access=cfg.instr_memaccess,
                                    dump_reg_bank=cfg.instr_regbank),
                    YAMLTimingInfo(), cfg.timing)
