# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Statistical distinguishers over batches of leakage traces.

Traces are stored in 2-D numpy arrays, one trace per row and one time sample
per column. All distinguishers work on the [start, end) column range and
return a (1, end - start) float64 matrix, so that results for several
groupings or intermediate values can be concatenated column-wise. Columns
where a statistic is undefined (no variance) are set to NaN.
"""

import enum
import logging
from typing import Optional, Sequence, TextIO, Tuple, Union

import numpy as np
from scipy.stats import ttest_ind_from_stats

from pafsca.leakage_models import hamming_weight, hamming_weight_vec

logger = logging.getLogger()


class Classification(enum.Enum):
    """Group a trace belongs to for a t-test."""

    GROUP_0 = 0
    GROUP_1 = 1
    IGNORE = 2


Classifier = Sequence[Classification]


def _check_range(start: int, end: int, num_cols: int) -> None:
    if start < 0 or end > num_cols or start >= end:
        raise ValueError(f"Invalid sample range [{start}, {end}) for traces "
                         f"with {num_cols} samples")


def _as_matrix(traces) -> np.ndarray:
    traces = np.asarray(traces, dtype=np.float64)
    if traces.ndim != 2:
        raise ValueError(f"Expected a 2-D trace matrix, got {traces.ndim} dimension(s)")
    return traces


def _groups(start: int, end: int, traces,
            other: Union[np.ndarray, Classifier]) -> Tuple[np.ndarray, np.ndarray]:
    """Return the [start, end) columns of the two groups.

    other is either the second group's trace matrix, or a classifier giving
    the group of each row of traces.
    """
    traces = _as_matrix(traces)
    if isinstance(other, np.ndarray) and other.ndim == 2:
        other = _as_matrix(other)
        _check_range(start, end, min(traces.shape[1], other.shape[1]))
        group0 = traces[:, start:end]
        group1 = other[:, start:end]
    else:
        if len(other) != traces.shape[0]:
            raise ValueError(f"Classifier has {len(other)} entries for "
                             f"{traces.shape[0]} traces")
        _check_range(start, end, traces.shape[1])
        classes = np.array([Classification(c).value for c in other], dtype=np.int64)
        group0 = traces[classes == Classification.GROUP_0.value, start:end]
        group1 = traces[classes == Classification.GROUP_1.value, start:end]
    for name, group in (("group 0", group0), ("group 1", group1)):
        if group.shape[0] < 2:
            raise ValueError(f"At least 2 traces are needed in {name}, got {group.shape[0]}")
    return group0, group1


def _welch(mean0, var0, n0, mean1, var1, n1) -> np.ndarray:
    """Welch's t-statistic, NaN where both groups have no variance."""
    degenerate = (var0 == 0) & (var1 == 0)
    with np.errstate(divide="ignore", invalid="ignore"):
        t = ttest_ind_from_stats(mean0, np.sqrt(var0), n0, mean1, np.sqrt(var1), n1,
                                 equal_var=False)[0]
    t = np.asarray(t, dtype=np.float64)
    t[degenerate] = np.nan
    return t.reshape(1, -1)


def t_test(start: int, end: int, traces, other: Union[np.ndarray, Classifier]) -> np.ndarray:
    """
    Welch's t-test, per sample in [start, end).

    traces and other are either the two groups of traces, or the traces and
    a classifier assigning each trace to a group (IGNORE traces are left
    out). Sample variances (ddof=1) are used.

    The return value is a (1, end - start) matrix.
    """
    group0, group1 = _groups(start, end, traces, other)
    return _welch(np.mean(group0, axis=0), np.var(group0, axis=0, ddof=1), group0.shape[0],
                  np.mean(group1, axis=0), np.var(group1, axis=0, ddof=1), group1.shape[0])


def _welford(group: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Single pass mean and sample variance of each column of group."""
    mean = np.zeros(group.shape[1])
    m2 = np.zeros(group.shape[1])
    for n, row in enumerate(group, start=1):
        delta = row - mean
        mean += delta / n
        m2 += delta * (row - mean)
    return mean, m2 / (group.shape[0] - 1)


def perfect_t_test(start: int, end: int, traces, other: Union[np.ndarray, Classifier],
                   verbose: Optional[TextIO] = None) -> np.ndarray:
    """
    Welch's t-test using a numerically stable streaming accumulation.

    Takes the same arguments as t_test and agrees with it up to floating
    point rounding. When verbose is provided, per-group statistics are
    written to it.
    """
    group0, group1 = _groups(start, end, traces, other)
    mean0, var0 = _welford(group0)
    mean1, var1 = _welford(group1)
    t = _welch(mean0, var0, group0.shape[0], mean1, var1, group1.shape[0])
    if verbose is not None:
        for name, group, mean, var in (("Group 0", group0, mean0, var0),
                                       ("Group 1", group1, mean1, var1)):
            verbose.write(f"{name}: {group.shape[0]} traces, "
                          f"mean: {np.array2string(mean, precision=3)}, "
                          f"var: {np.array2string(var, precision=3)}\n")
        value, index = find_max(t[0])
        verbose.write(f"Max t-value: {value:.3f} at sample {start + index}\n")
    logger.debug(f"Perfect t-test on {group0.shape[0]}+{group1.shape[0]} traces, "
                 f"samples [{start}, {end})")
    return t


def correl(start: int, end: int, traces, ivalues) -> np.ndarray:
    """
    Pearson correlation between each sample in [start, end) and ivalues.

    ivalues holds one intermediate value per trace, either as a vector or as
    a (1, N) matrix. Results lie in [-1, 1].
    """
    traces = _as_matrix(traces)
    ivalues = np.asarray(ivalues, dtype=np.float64).reshape(-1)
    if ivalues.shape[0] != traces.shape[0]:
        raise ValueError(f"Got {ivalues.shape[0]} intermediate values for "
                         f"{traces.shape[0]} traces")
    if traces.shape[0] < 2:
        raise ValueError("At least 2 traces are needed for a correlation")
    _check_range(start, end, traces.shape[1])

    x = traces[:, start:end]
    xc = x - np.mean(x, axis=0)
    yc = ivalues - np.mean(ivalues)
    denom = np.sqrt(np.sum(xc * xc, axis=0) * np.sum(yc * yc))
    with np.errstate(divide="ignore", invalid="ignore"):
        r = np.where(denom > 0, (yc @ xc) / denom, np.nan)
    return np.clip(r, -1.0, 1.0).reshape(1, -1)


def find_max(data) -> Tuple[float, int]:
    """Return the value with the largest magnitude in data and its index.

    (0.0, -1) is returned for empty data. NaNs are skipped.
    """
    data = np.asarray(data, dtype=np.float64).reshape(-1)
    if data.size == 0 or np.all(np.isnan(data)):
        return 0.0, -1
    index = int(np.nanargmax(np.abs(data)))
    return float(data[index]), index


def interleaved_classifier(num_traces: int) -> Classifier:
    """Even traces go to group 0, odd traces to group 1."""
    return [Classification.GROUP_0 if i % 2 == 0 else Classification.GROUP_1
            for i in range(num_traces)]


def hamming_weight_ivalues(values) -> np.ndarray:
    """Turn raw intermediate values into their Hamming weights."""
    return hamming_weight_vec(np.asarray(values).astype(np.uint64)).astype(np.float64)


def hamming_weight_classifier(values, num_bits: int) -> Classifier:
    """
    Classify traces on the Hamming weight of their intermediate value.

    Values whose Hamming weight is below num_bits // 2 go to group 0, above
    to group 1. Values with a Hamming weight of exactly num_bits // 2 are
    ignored, so for odd widths the lower of the two middle weights is ignored.
    """
    mask = (1 << num_bits) - 1
    half = num_bits // 2
    classifier = []
    for value in np.asarray(values).reshape(-1):
        hw = hamming_weight(int(value), mask)
        if hw < half:
            classifier.append(Classification.GROUP_0)
        elif hw > half:
            classifier.append(Classification.GROUP_1)
        else:
            classifier.append(Classification.IGNORE)
    return classifier
