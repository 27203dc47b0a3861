#!/usr/bin/env python3
# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Statistical leakage analysis of simulated or captured power traces."""

import inspect
import logging as log
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np
import typer
from tqdm import tqdm

from pafsca import stats

app = typer.Typer(add_completion=False)

help_traces = inspect.cleandoc("""Trace files (.npy), one trace per row. Two files are expected,
    one per group, unless --interleaved is used.""")
help_trace = inspect.cleandoc("""Trace file (.npy), one trace per row.""")
help_ivalues = inspect.cleandoc("""Intermediate value files (.npy), each holding one value per
    trace. One result row is produced per file.""")
help_interleaved = inspect.cleandoc("""Use a single trace file where even traces belong to group 0
    and odd traces to group 1.""")
help_perfect = inspect.cleandoc("""Use the numerically stable streaming t-test.""")
help_start = inspect.cleandoc("""Index of the first sample to analyze. Default: 0""")
help_end = inspect.cleandoc("""Index one past the last sample to analyze. If not provided, or past
    the last sample, ends at the last sample common to all trace files.""")
help_period = inspect.cleandoc("""Decimation period: only keep one sample every period samples.
    Default: 1""")
help_offset = inspect.cleandoc("""Decimation offset: index, modulo the decimation period, of the
    samples to keep. Default: 0""")
help_output = inspect.cleandoc("""Name of the .npy file to save the results to. If not provided,
    the results are only logged.""")
help_append = inspect.cleandoc("""Append the results as new rows to an existing output file
    instead of overwriting it.""")
help_hamming_weight = inspect.cleandoc("""Correlate with the Hamming weight of the intermediate
    values instead of their raw value.""")
help_num_bits = inspect.cleandoc("""Width in bits of the intermediate values. Traces whose
    intermediate value has a Hamming weight below half of the width go to group 0, above to
    group 1. Default: 8""")
help_verbose = inspect.cleandoc("""Log debug information.""")


def setup_logging(verbose: bool) -> None:
    log_format = "%(asctime)s %(levelname)s: %(message)s"
    log.basicConfig(format=log_format,
                    datefmt="%Y-%m-%d %I:%M:%S",
                    handlers=[log.StreamHandler()],
                    level=log.DEBUG if verbose else log.INFO,
                    force=True)


def load_npy(filename: Path, what: str) -> np.ndarray:
    """Load a numpy array, exiting with an error if it can not be read."""
    try:
        return np.load(filename)
    except (OSError, ValueError) as e:
        log.error(f"Error reading {what} from '{filename}': {e}")
        raise typer.Exit(code=1)


def load_traces(filename: Path) -> np.ndarray:
    traces = load_npy(filename, "traces")
    if traces.ndim == 1:
        traces = traces.reshape(1, -1)
    log.info(f"Read {traces.shape[0]} traces ({traces.shape[1]} samples) from '{filename}'")
    return traces.astype(np.float64)


def sample_range(start: int, end: Optional[int], num_samples: int) -> int:
    """End of the sample range, clamped to the number of samples."""
    end = num_samples if end is None else min(end, num_samples)
    log.info(f"Will process {end - start} samples per trace, starting at sample {start}")
    return end


def decimate(results: np.ndarray, start: int, period: int, offset: int) -> np.ndarray:
    """Keep the result columns whose sample index is offset modulo period."""
    if period < 1 or not 0 <= offset < period:
        log.error(f"Invalid decimation {period}%{offset}")
        raise typer.Exit(code=1)
    if period == 1:
        return results
    columns = [i for i in range(results.shape[1]) if (start + i) % period == offset]
    return results[:, columns]


def save_results(results: np.ndarray, output: Optional[Path], append: bool) -> None:
    for row in range(results.shape[0]):
        value, index = stats.find_max(results[row])
        log.info(f"Max value: {value:.3f} at sample {index}")
    if output is None:
        return
    if append and output.exists():
        previous = load_npy(output, "results")
        if previous.ndim != 2 or previous.shape[1] != results.shape[1]:
            log.error(f"Can not append {results.shape[1]} columns to '{output}' "
                      f"of shape {previous.shape}")
            raise typer.Exit(code=1)
        results = np.concatenate((previous, results), axis=0)
    np.save(output, results)
    log.info(f"Saved {results.shape[0]}x{results.shape[1]} results to '{output}'")


def run_metric(metric, *args) -> np.ndarray:
    try:
        return metric(*args)
    except ValueError as e:
        log.error(f"{e}")
        raise typer.Exit(code=1)


@app.command()
def ttest(traces: List[Path] = typer.Argument(..., exists=True, dir_okay=False,
                                              help=help_traces),
          interleaved: bool = typer.Option(False, help=help_interleaved),
          perfect: bool = typer.Option(False, help=help_perfect),
          start: int = typer.Option(0, help=help_start),
          end: Optional[int] = typer.Option(None, help=help_end),
          decimation_period: int = typer.Option(1, help=help_period),
          decimation_offset: int = typer.Option(0, help=help_offset),
          output: Optional[Path] = typer.Option(None, help=help_output),
          append: bool = typer.Option(False, help=help_append),
          verbose: bool = typer.Option(False, help=help_verbose)):
    """Non-specific Welch's t-test between two groups of traces."""
    setup_logging(verbose)
    if interleaved and len(traces) != 1:
        log.error("1 trace file needed in interleaved mode")
        raise typer.Exit(code=1)
    if not interleaved and len(traces) != 2:
        log.error("2 trace files needed")
        raise typer.Exit(code=1)

    matrices = [load_traces(t) for t in tqdm(traces, desc="Loading traces")]
    end = sample_range(start, end, min(m.shape[1] for m in matrices))
    if interleaved:
        other = stats.interleaved_classifier(matrices[0].shape[0])
    else:
        other = matrices[1]

    if perfect:
        results = run_metric(stats.perfect_t_test, start, end, matrices[0], other,
                             sys.stdout if verbose else None)
    else:
        results = run_metric(stats.t_test, start, end, matrices[0], other)
    save_results(decimate(results, start, decimation_period, decimation_offset), output, append)


@app.command()
def specific_ttest(traces: Path = typer.Argument(..., exists=True, dir_okay=False,
                                                 help=help_trace),
                   ivalues: List[Path] = typer.Argument(..., exists=True, dir_okay=False,
                                                        help=help_ivalues),
                   num_bits: int = typer.Option(8, help=help_num_bits),
                   perfect: bool = typer.Option(False, help=help_perfect),
                   start: int = typer.Option(0, help=help_start),
                   end: Optional[int] = typer.Option(None, help=help_end),
                   decimation_period: int = typer.Option(1, help=help_period),
                   decimation_offset: int = typer.Option(0, help=help_offset),
                   output: Optional[Path] = typer.Option(None, help=help_output),
                   append: bool = typer.Option(False, help=help_append),
                   verbose: bool = typer.Option(False, help=help_verbose)):
    """Specific Welch's t-test, grouping traces on the Hamming weight of intermediate values."""
    setup_logging(verbose)
    matrix = load_traces(traces)
    end = sample_range(start, end, matrix.shape[1])

    rows = []
    for filename in tqdm(ivalues, desc="Intermediate values"):
        classifier = stats.hamming_weight_classifier(load_npy(filename, "intermediate values"),
                                                     num_bits)
        if perfect:
            rows.append(run_metric(stats.perfect_t_test, start, end, matrix, classifier,
                                   sys.stdout if verbose else None))
        else:
            rows.append(run_metric(stats.t_test, start, end, matrix, classifier))
    results = np.concatenate(rows, axis=0)
    save_results(decimate(results, start, decimation_period, decimation_offset), output, append)


@app.command()
def correl(traces: Path = typer.Argument(..., exists=True, dir_okay=False, help=help_trace),
           ivalues: List[Path] = typer.Argument(..., exists=True, dir_okay=False,
                                                help=help_ivalues),
           hamming_weight: bool = typer.Option(False, help=help_hamming_weight),
           start: int = typer.Option(0, help=help_start),
           end: Optional[int] = typer.Option(None, help=help_end),
           decimation_period: int = typer.Option(1, help=help_period),
           decimation_offset: int = typer.Option(0, help=help_offset),
           output: Optional[Path] = typer.Option(None, help=help_output),
           append: bool = typer.Option(False, help=help_append),
           verbose: bool = typer.Option(False, help=help_verbose)):
    """Pearson correlation between traces and intermediate values."""
    setup_logging(verbose)
    matrix = load_traces(traces)
    end = sample_range(start, end, matrix.shape[1])

    rows = []
    for filename in tqdm(ivalues, desc="Intermediate values"):
        values = load_npy(filename, "intermediate values")
        if hamming_weight:
            values = stats.hamming_weight_ivalues(values)
        rows.append(run_metric(stats.correl, start, end, matrix, values))
    results = np.concatenate(rows, axis=0)
    save_results(decimate(results, start, decimation_period, decimation_offset), output, append)


if __name__ == "__main__":
    app()
