# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0

import numpy as np

# Values are handled as unsigned 64-bit quantities.
MASK_64 = (1 << 64) - 1


def bit_count(int_no):
    """Computes Hamming weight of a number."""
    int_no &= MASK_64
    c = 0
    while int_no:
        int_no &= int_no - 1
        c += 1
    return c


def hamming_weight(value, mask=-1):
    """Computes Hamming weight of value, restricted to the bits set in mask."""
    return bit_count(value & mask)


def hamming_distance(value, previous):
    """Computes the number of bits differing between value and previous."""
    return bit_count(value ^ previous)


def hamming_weight_vec(values):
    """
    Computes the Hamming weight of every element of an integer array.

    The return value has the same shape as values.
    """
    values = np.asarray(values)
    flat = np.ascontiguousarray(values.reshape(-1).astype(np.uint64))
    bits = np.unpackbits(flat.view(np.uint8).reshape(-1, 8), axis=1)
    return np.sum(bits, axis=1).reshape(values.shape)
