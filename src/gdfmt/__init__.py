# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""GDScript formatter: Topiary plus tree-synchronized post-processing."""

__version__ = "0.1.0"
