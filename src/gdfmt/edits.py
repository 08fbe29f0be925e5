# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Edit records for keeping a syntax tree in step with its buffer, and text diffs.

An EditRecord describes one replacement in the buffer. The `old_*` fields
use the coordinates before the replacement, the `new_*` fields the
coordinates after it. Records produced by one pass are replayed in source
order, and each one is expressed against the buffer as it stands after the
records before it.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass

from tree_sitter import Tree

from .position import Point, advance_point


@dataclass(frozen=True)
class EditRecord:
    """One text replacement, in the form tree-sitter expects."""
    start_byte: int
    old_end_byte: int
    new_end_byte: int
    start_point: Point
    old_end_point: Point
    new_end_point: Point

    @classmethod
    def replacement(cls, start_byte: int, start_point: Point, old: bytes, new: bytes) -> EditRecord:
        """Build the record for replacing `old` with `new` at `start_byte`."""
        return cls(
            start_byte=start_byte,
            old_end_byte=start_byte + len(old),
            new_end_byte=start_byte + len(new),
            start_point=start_point,
            old_end_point=advance_point(start_point, old),
            new_end_point=advance_point(start_point, new),
        )

    @classmethod
    def insertion(cls, start_byte: int, start_point: Point, new: bytes) -> EditRecord:
        """Build the record for inserting `new` at `start_byte`."""
        return cls.replacement(start_byte, start_point, b"", new)

    @property
    def delta(self) -> int:
        """Change in buffer length caused by this edit."""
        return self.new_end_byte - self.old_end_byte

    def apply(self, tree: Tree) -> None:
        """Mirror this edit into `tree`."""
        tree.edit(
            start_byte=self.start_byte,
            old_end_byte=self.old_end_byte,
            new_end_byte=self.new_end_byte,
            start_point=tuple(self.start_point),
            old_end_point=tuple(self.old_end_point),
            new_end_point=tuple(self.new_end_point),
        )


def unified_diff(original: str, formatted: str, path: str) -> str:
    """Return a unified diff between the original and formatted text."""
    return "".join(difflib.unified_diff(
        original.splitlines(keepends=True),
        formatted.splitlines(keepends=True),
        fromfile=f"{path} (original)",
        tofile=f"{path} (formatted)",
    ))
