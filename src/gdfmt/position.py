# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Row/column bookkeeping for byte spans of the source buffer."""

from typing import NamedTuple


class Point(NamedTuple):
    """A 0-indexed (row, column) position; columns count bytes like tree-sitter."""
    row: int
    column: int


ORIGIN = Point(0, 0)


def advance_point(start: Point, data: bytes) -> Point:
    """Return the point reached after scanning `data` from `start`."""
    newlines = data.count(b"\n")
    if newlines == 0:
        return Point(start.row, start.column + len(data))
    return Point(start.row + newlines, len(data) - data.rfind(b"\n") - 1)


def point_at(source: bytes, offset: int) -> Point:
    """Return the point of byte `offset` in `source`."""
    return advance_point(ORIGIN, source[:offset])
