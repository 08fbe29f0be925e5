# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""gdfmt test suite.

Test Organization:
    - unit/: Fast, isolated tests; the Topiary pass is replaced by fake engines
    - integration/: End-to-end tests running the real Topiary executable
    - conftest.py: Shared pytest fixtures and configuration

Running Tests:
    # All tests
    pytest

    # Unit tests only (fast)
    pytest tests/unit/
"""
