# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
The source buffer and its syntax tree, owned together.

Every change to the buffer made outside the parser goes through
SyntaxDocument so the tree is edited (or rebuilt) before anything queries it
again. A document belongs to one formatting request at a time.
"""

from __future__ import annotations

from collections.abc import Iterable

from tree_sitter import Parser, Tree

from .edits import EditRecord


class SyntaxDocument:
    """A UTF-8 buffer and a tree that describes it."""

    def __init__(self, source: bytes, tree: Tree):
        self.source = source
        self.tree = tree

    @classmethod
    def parse(cls, parser: Parser, text: str) -> SyntaxDocument:
        """Parse `text` into a new document."""
        source = text.encode("utf-8")
        return cls(source, parser.parse(source))

    @property
    def text(self) -> str:
        return self.source.decode("utf-8")

    def replace(self, source: bytes, edits: Iterable[EditRecord], parser: Parser) -> None:
        """Swap in a rewritten buffer, replaying `edits` on the tree in order."""
        self.source = source
        for edit in edits:
            edit.apply(self.tree)
        self.reparse(parser)

    def insert(self, edit: EditRecord, data: bytes) -> None:
        """Insert `data` at `edit.start_byte` and mirror it into the tree.

        The tree is edited but not reparsed; callers batching several
        insertions reparse once at the end.
        """
        start = edit.start_byte
        self.source = self.source[:start] + data + self.source[start:]
        edit.apply(self.tree)

    def reparse(self, parser: Parser, incremental: bool = True) -> None:
        """Rebuild the tree from the current buffer."""
        if incremental:
            self.tree = parser.parse(self.source, old_tree=self.tree)
        else:
            self.tree = parser.parse(self.source)
