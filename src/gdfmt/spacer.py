# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Vertical spacing between declarations.

Two tree-sitter queries find adjacent declarations (functions, classes,
variables, signals, ...) that need a blank line between them, taking any
comments or annotations in between into account. All insertion points are
collected from one unmodified tree and applied from the end of the buffer
backwards, so the offsets still to be processed never move.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from tree_sitter import Language, Node, Parser, Query, QueryCursor

from .document import SyntaxDocument
from .edits import EditRecord
from .position import Point

# Two queries are needed because variables can sit above or below functions.
# 1. variable, function, class, signal, const, enum or constructor followed,
#    possibly through comments and annotations, by a function, constructor
#    or class.
# 2. constructor, function or class followed by a variable, signal, const
#    or enum.
SPACING_QUERIES = (
    """
    (([(variable_statement) (function_definition) (class_definition) (signal_statement)
       (const_statement) (enum_definition) (constructor_definition)]) @first
     . (([(comment) (annotation)])* @comment
     . ([(function_definition) (constructor_definition) (class_definition)]) @second))
    """,
    """
    (([(constructor_definition) (function_definition) (class_definition)]) @first
     . ([(variable_statement) (signal_statement) (const_statement) (enum_definition)]) @second)
    """,
)

# Line breaks that make up exactly one blank line
BLANK_LINE_BREAKS = 2


@dataclass(frozen=True, order=True)
class InsertionPoint:
    """Where a blank line must be ensured."""
    byte_offset: int
    point: Point


def compile_spacing_queries(language: Language) -> tuple[Query, ...]:
    """Compile the declaration spacing queries for `language`."""
    return tuple(Query(language, source) for source in SPACING_QUERIES)


def _line_start(source: bytes, node: Node) -> InsertionPoint:
    """Insertion point at column 0 of the line `node` starts on."""
    offset = source.rfind(b"\n", 0, node.start_byte) + 1
    return InsertionPoint(offset, Point(node.start_point[0], 0))


def _insertion_point(source: bytes, captures: dict[str, list[Node]]) -> InsertionPoint:
    first = captures["first"][0]
    second = captures["second"][0]
    comments = sorted(captures.get("comment", []), key=lambda node: node.start_byte)

    # A comment trailing on the first declaration's line stays with it: the
    # blank line goes before whatever follows that comment.
    if comments and comments[0].start_point[0] == first.start_point[0]:
        following = comments[1] if len(comments) > 1 else second
        return _line_start(source, following)

    return InsertionPoint(first.end_byte, Point(*first.end_point))


def collect_insertion_points(document: SyntaxDocument, queries: Iterable[Query]) -> list[InsertionPoint]:
    """Run the spacing queries and return insertion points, last one first.

    Args:
        document: Document whose tree describes its buffer
        queries: Compiled spacing queries

    Returns:
        list[InsertionPoint]: Unique points sorted by descending byte offset
    """
    root = document.tree.root_node
    points: set[InsertionPoint] = set()
    for query in queries:
        for _, captures in QueryCursor(query).matches(root):
            points.add(_insertion_point(document.source, captures))
    return sorted(points, reverse=True)


def count_line_breaks_around(source: bytes, offset: int) -> int:
    """Count consecutive line breaks directly before and after `offset`."""
    before = 0
    while offset - before - 1 >= 0 and source[offset - before - 1] == 0x0A:
        before += 1
    after = 0
    while offset + after < len(source) and source[offset + after] == 0x0A:
        after += 1
    return before + after


def ensure_blank_lines(document: SyntaxDocument, queries: Iterable[Query], parser: Parser) -> int:
    """Make sure matched declarations are separated by exactly one blank line.

    Existing blank lines are never multiplied: a point that already has one
    is left alone.

    Args:
        document: Document to update; its tree must describe its buffer
        queries: Compiled spacing queries
        parser: Parser used to refresh the tree after the insertions

    Returns:
        int: Number of points where line breaks were inserted
    """
    inserted = 0
    for insertion in collect_insertion_points(document, queries):
        missing = BLANK_LINE_BREAKS - count_line_breaks_around(document.source, insertion.byte_offset)
        if missing <= 0:
            continue
        data = b"\n" * missing
        document.insert(EditRecord.insertion(insertion.byte_offset, insertion.point, data), data)
        inserted += 1

    if inserted:
        document.reparse(parser)
    return inserted
