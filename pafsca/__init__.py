# Copyright lowRISC contributors.
# Licensed under the Apache License, Version 2.0, see LICENSE for details.
# SPDX-License-Identifier: Apache-2.0
"""Power and timing side-channel leakage simulation of instruction traces."""

__version__ = "0.1.0"
