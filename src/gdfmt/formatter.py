# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Formatting pipeline for GDScript source.

The formatter runs the stages of one request in a fixed order:

1. Parse the input (and keep a baseline tree for safe mode)
2. Preprocess: outside-string rewrites that prepare the text for Topiary
3. Format through the external engine
4. Reparse the formatted text
5. Postprocess: outside-string cleanup rewrites, then declaration spacing
6. Optionally reorder declarations (a failure only produces a warning)
7. Optionally verify the structure against the baseline tree
8. Return the text and drop the per-request state

A Formatter holds one FormatterCache and can serve any number of requests
one after the other, which is what the daemon relies on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from returns.result import Failure, Result, Success
from tree_sitter import Tree

from .cache import FormatterCache
from .config import FormatterConfig
from .document import SyntaxDocument
from .engine import FormattingEngine, ReorderPass, TopiaryEngine
from .errors import FormattingError, GdfmtError, structure_changed
from .logging_jsonl import JsonlLogger
from .rewriter import POSTPROCESS_RULES, PREPROCESS_RULES, RewriteRule, rewrite_outside_strings
from .spacer import ensure_blank_lines
from .tree_compare import compare_trees


@dataclass(frozen=True)
class FormatOutcome:
    """Result of one successful formatting request.

    Attributes:
        text: The formatted source
        warnings: Recoverable problems met on the way (e.g. failed reordering)
        changes: Number of edits made by each post-processing step
    """
    text: str
    warnings: Tuple[str, ...] = ()
    changes: Dict[str, int] = field(default_factory=dict)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class Formatter:
    """Runs the formatting pipeline over one source text at a time."""

    def __init__(
        self,
        config: FormatterConfig,
        cache: FormatterCache,
        engine: FormattingEngine,
        reorder: Optional[ReorderPass] = None,
        logger: Optional[JsonlLogger] = None,
    ):
        """Initialize the formatter.

        Args:
            config: Formatter options
            cache: Parser and compiled queries, built with FormatterCache.create
            engine: External tree-to-text formatting pass
            reorder: Optional reorder pass, used when config.reorder_code is set
            logger: Optional event logger
        """
        self.config = config
        self.cache = cache
        self.engine = engine
        self.reorder_pass = reorder
        self.logger = logger

        # Per-request state
        self._document: Optional[SyntaxDocument] = None
        self._baseline: Optional[Tree] = None
        self._warnings: List[str] = []
        self._changes: Dict[str, int] = {}

    def format(self, content: str) -> Result[FormatOutcome, GdfmtError]:
        """Format `content`.

        Returns:
            Result[FormatOutcome, GdfmtError]: The formatted text (possibly with
            warnings), a FormattingError if the engine failed, or a SafetyError
            if safe mode found a structural change
        """
        try:
            return self._run(content)
        finally:
            self._reset()

    def _run(self, content: str) -> Result[FormatOutcome, GdfmtError]:
        parser = self.cache.parser
        self._document = SyntaxDocument.parse(parser, content)
        if self.config.safe:
            self._baseline = parser.parse(self._document.source)

        self.preprocess()

        processed = self.process()
        if isinstance(processed, Failure):
            self._log("format_failed", error=processed.failure().message)
            return processed

        self.postprocess()
        self.reorder()
        return self.finish()

    def preprocess(self) -> None:
        """Rewrites applied before the engine runs."""
        self._apply_rules(PREPROCESS_RULES)

    def process(self) -> Result[None, FormattingError]:
        """Run the external engine and parse its output into a fresh tree."""
        formatted = self.engine.format(self._document, self.config.indent_string)
        if isinstance(formatted, Failure):
            return formatted

        self._document = SyntaxDocument.parse(self.cache.parser, formatted.unwrap())
        return Success(None)

    def postprocess(self) -> None:
        """Clean up the engine output, then fix declaration spacing."""
        self._apply_rules(POSTPROCESS_RULES)

        self._document.reparse(self.cache.parser, incremental=False)
        self._changes["declaration_spacing"] = ensure_blank_lines(
            self._document, self.cache.spacing_queries, self.cache.parser
        )

    def reorder(self) -> None:
        """Reorder declarations if requested; failures only warn."""
        if not self.config.reorder_code:
            return

        if self.reorder_pass is None:
            self._warn("Code reordering is not available. Returning formatted code without reordering.")
            return

        self._document.reparse(self.cache.parser)
        reordered = self.reorder_pass.reorder(self._document)
        if isinstance(reordered, Failure):
            error = reordered.failure()
            self._log("reorder_failed", error=error.message)
            self._warn(f"Code reordering failed: {error.message}. Returning formatted code without reordering.")
            return

        self._document = SyntaxDocument.parse(self.cache.parser, reordered.unwrap())

    def finish(self) -> Result[FormatOutcome, GdfmtError]:
        """Run the safe mode check and hand back the text."""
        if self.config.safe:
            self._document.reparse(self.cache.parser)
            if not compare_trees(self._baseline, self._document.tree):
                self._log("safety_check_failed")
                return Failure(structure_changed())

        return Success(FormatOutcome(
            text=self._document.text,
            warnings=tuple(self._warnings),
            changes=dict(self._changes),
        ))

    def _apply_rules(self, rules: Tuple[RewriteRule, ...]) -> None:
        for rule in rules:
            count = rewrite_outside_strings(self._document, rule, self.cache.parser)
            self._changes[rule.name] = self._changes.get(rule.name, 0) + count

    def _warn(self, message: str) -> None:
        self._warnings.append(message)

    def _log(self, ev: str, **fields) -> None:
        if self.logger:
            self.logger.event(ev, **fields)

    def _reset(self) -> None:
        self._document = None
        self._baseline = None
        self._warnings = []
        self._changes = {}


# Convenience functions for direct usage

def create_formatter(
    config: Optional[FormatterConfig] = None,
    engine: Optional[FormattingEngine] = None,
    reorder: Optional[ReorderPass] = None,
    logger: Optional[JsonlLogger] = None,
) -> Formatter:
    """Build a formatter with its own cache.

    Args:
        config: Formatter options (defaults if None)
        engine: Formatting engine (Topiary with default settings if None)
        reorder: Optional reorder pass
        logger: Optional event logger

    Returns:
        Formatter: Ready to serve requests
    """
    config = config or FormatterConfig()
    return Formatter(
        config=config,
        cache=FormatterCache.create(),
        engine=engine or TopiaryEngine(),
        reorder=reorder,
        logger=logger,
    )


def format_gdscript(
    content: str,
    config: Optional[FormatterConfig] = None,
    engine: Optional[FormattingEngine] = None,
) -> Result[FormatOutcome, GdfmtError]:
    """Format GDScript content with a one-off formatter.

    Args:
        content: GDScript source
        config: Optional formatter options
        engine: Optional formatting engine

    Returns:
        Result[FormatOutcome, GdfmtError]: Formatted text or error
    """
    return create_formatter(config, engine).format(content)
