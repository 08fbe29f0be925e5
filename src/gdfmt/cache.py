# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Parser and compiled queries shared by every request of a formatter.

Loading the grammar and compiling queries is the main fixed cost of a run,
so a cache is built once, explicitly, and handed to the formatter. It is
reused across requests but never shared between threads: parallel workers
each build their own.
"""

from __future__ import annotations

from dataclasses import dataclass

from tree_sitter import Language, Parser, Query
from tree_sitter_language_pack import get_language

from .spacer import compile_spacing_queries

LANGUAGE_NAME = "gdscript"


@dataclass(frozen=True)
class FormatterCache:
    """Grammar, parser and compiled queries for GDScript."""
    language: Language
    parser: Parser
    spacing_queries: tuple[Query, ...]

    @classmethod
    def create(cls) -> FormatterCache:
        """Load the grammar and compile the queries."""
        language = get_language(LANGUAGE_NAME)
        return cls(
            language=language,
            parser=Parser(language),
            spacing_queries=compile_spacing_queries(language),
        )
