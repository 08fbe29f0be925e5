# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Regex rewrites that leave string literals alone.

The Topiary pass leaves a few artifacts behind (semicolons or commas alone
on a line, trailing commas the GDScript parser rejects) that are cheap to
fix with a regex but must never be fixed inside a string. Each rule is
matched against the unmodified buffer; the syntax tree decides which
matches sit inside a string literal, and the tree is edited and reparsed
once the whole pass has run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from tree_sitter import Parser, Tree

from .document import SyntaxDocument
from .edits import EditRecord
from .position import ORIGIN, advance_point

# Node kinds that hold literal text
STRING_KINDS = frozenset({"string", "string_name", "node_path"})


@dataclass(frozen=True)
class RewriteRule:
    """A regex rewrite applied outside of string literals.

    Attributes:
        name: Rule name used in logs and statistics
        pattern: Compiled bytes pattern
        template: Replacement template (``\\1`` / ``\\g<name>`` references)
        probe: Bytes that must occur in the buffer for the rule to match at all
    """
    name: str
    pattern: re.Pattern[bytes]
    template: bytes
    probe: bytes | None = None


def is_inside_string(tree: Tree, offset: int) -> bool:
    """Check whether byte `offset` lies inside a string literal node."""
    node = tree.root_node.descendant_for_byte_range(offset, offset)
    while node is not None:
        if node.type in STRING_KINDS:
            return True
        node = node.parent
    return False


def rewrite_outside_strings(document: SyntaxDocument, rule: RewriteRule, parser: Parser) -> int:
    """Apply `rule` to every match outside a string literal.

    Args:
        document: Document to rewrite; its tree must describe its buffer
        rule: The rewrite to apply
        parser: Parser used for the incremental reparse

    Returns:
        int: Number of replacements made
    """
    source = document.source
    if rule.probe is not None and rule.probe not in source:
        return 0

    chunks: list[bytes] = []
    edits: list[EditRecord] = []
    last_end = 0
    shift = 0
    # Running point in the rewritten buffer
    point = ORIGIN

    for match in rule.pattern.finditer(source):
        start, end = match.span()
        if is_inside_string(document.tree, start):
            continue

        replacement = match.expand(rule.template)
        untouched = source[last_end:start]
        point = advance_point(point, untouched)

        edit = EditRecord.replacement(start + shift, point, source[start:end], replacement)
        edits.append(edit)
        chunks.append(untouched)
        chunks.append(replacement)

        point = edit.new_end_point
        shift += edit.delta
        last_end = end

    if not edits:
        return 0

    chunks.append(source[last_end:])
    document.replace(b"".join(chunks), edits, parser)
    return len(edits)


# =============================================================================
# Rules
# =============================================================================

# Blank lines right after an `extends` header. The header line must not
# contain a comment; the class name is an identifier or a quoted path.
EXTENDS_BLANK_LINES = RewriteRule(
    name="extends_blank_lines",
    pattern=re.compile(
        rb'(?P<extends_line>^[^#\n]*extends )(?P<extends_name>([A-Za-z0-9_]+|".*?"))\n(\n*)',
        re.MULTILINE,
    ),
    template=rb"\g<extends_line>\g<extends_name>\n",
    probe=b"extends",
)

# Semicolons that ended up alone on a line, or at the end of one.
DANGLING_SEMICOLONS = RewriteRule(
    name="dangling_semicolons",
    pattern=re.compile(rb"(\s*;)+$", re.MULTILINE),
    template=b"",
    probe=b";",
)

# A comma alone on its line goes back to the end of the previous line.
# This commonly happens with lambdas inside arrays or call arguments.
DANGLING_COMMAS = RewriteRule(
    name="dangling_commas",
    pattern=re.compile(rb"(?<=[^\n\r])\n\s+,", re.MULTILINE),
    template=b",",
    probe=b",",
)

# The GDScript parser rejects a trailing comma in preload() calls, which
# the formatter adds to multi-line calls.
PRELOAD_TRAILING_COMMA = RewriteRule(
    name="preload_trailing_comma",
    pattern=re.compile(rb"preload\s*\(([^)]*),(\s*)\)"),
    template=rb"preload(\1\2)",
    probe=b"preload",
)

PREPROCESS_RULES: tuple[RewriteRule, ...] = (EXTENDS_BLANK_LINES,)

POSTPROCESS_RULES: tuple[RewriteRule, ...] = (
    DANGLING_SEMICOLONS,
    DANGLING_COMMAS,
    PRELOAD_TRAILING_COMMA,
)
