# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Noise sources added on top of the simulated power."""

import enum
from typing import Optional

import numpy as np


class NoiseKind(str, enum.Enum):
    """Enumeration of the available noise sources."""

    ZERO = "zero"
    CONSTANT = "constant"
    UNIFORM = "uniform"
    NORMAL = "normal"


class NoiseSource:
    """ Noise source base class.

    Produces one scalar per call to get_noise().
    """
    def get_noise(self) -> float:
        raise NotImplementedError


class ZeroNoise(NoiseSource):
    def get_noise(self) -> float:
        return 0.0


class ConstantNoise(NoiseSource):
    def __init__(self, level: float) -> None:
        self.level = level

    def get_noise(self) -> float:
        return self.level


class UniformNoise(NoiseSource):
    """Uniformly distributed noise in [-level/2, level/2).

    Draws are reproducible for a given seed.
    """
    def __init__(self, level: float, seed: Optional[int] = None) -> None:
        self.level = level
        self.rng = np.random.default_rng(seed)

    def get_noise(self) -> float:
        return float(self.rng.uniform(-self.level / 2, self.level / 2))


class NormalNoise(NoiseSource):
    """Normally distributed noise, zero mean and standard deviation level.

    Draws are reproducible for a given seed.
    """
    def __init__(self, level: float, seed: Optional[int] = None) -> None:
        self.level = level
        self.rng = np.random.default_rng(seed)

    def get_noise(self) -> float:
        return float(self.rng.normal(0.0, self.level))


def get_source(kind: NoiseKind, level: float, seed: Optional[int] = None) -> NoiseSource:
    """Build a noise source of the requested kind.

    Args:
        kind: The kind of noise (a NoiseKind or its string value).
        level: The noise amplitude.
        seed: Seed for the random kinds.

    Returns:
        The noise source.
    """
    kind = NoiseKind(kind)
    if kind == NoiseKind.ZERO:
        return ZeroNoise()
    elif kind == NoiseKind.CONSTANT:
        return ConstantNoise(level)
    elif kind == NoiseKind.UNIFORM:
        return UniformNoise(level, seed)
    else:
        return NormalNoise(level, seed)
