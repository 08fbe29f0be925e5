# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
External passes around the post-processing pipeline.

The main tree-to-text formatting pass is done by Topiary, driven through its
command line with a GDScript query file. The optional reorder pass is an
injected collaborator; only its contract lives here.
"""

from __future__ import annotations

import json
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol

from returns.result import Failure, Result, Success, safe

from .config import EngineSettings
from .document import SyntaxDocument
from .errors import FormattingError, ReorderError, engine_timeout


class FormattingEngine(Protocol):
    """Protocol for the tree-to-text formatting pass."""

    name: str

    def format(self, document: SyntaxDocument, indent: str) -> Result[str, FormattingError]:
        """Return the formatted text of `document`."""
        ...


class ReorderPass(Protocol):
    """Protocol for the optional declaration reordering pass."""

    def reorder(self, document: SyntaxDocument) -> Result[str, ReorderError]:
        """Return the reordered text of `document`."""
        ...


def render_configuration(indent: str, grammar_path: Optional[Path] = None) -> str:
    """Render a Topiary Nickel configuration for GDScript."""
    lines = [
        "{",
        "  languages = {",
        "    gdscript = {",
        '      extensions = ["gd"],',
        f"      indent = {json.dumps(indent)},",
    ]
    if grammar_path is not None:
        lines.append(f"      grammar.source.path = {json.dumps(str(grammar_path))},")
    lines += [
        "    },",
        "  },",
        "}",
        "",
    ]
    return "\n".join(lines)


class TopiaryEngine:
    """Formats GDScript by running the Topiary CLI as a subprocess."""

    name = "topiary"

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()

    def is_available(self) -> bool:
        """Check if the Topiary executable can be found."""
        return shutil.which(self.settings.executable) is not None

    def build_command(self, configuration: Optional[Path]) -> List[str]:
        """Build the Topiary command line. Input is read from stdin."""
        command = [self.settings.executable]
        if configuration is not None:
            command += ["--configuration", str(configuration)]
        command += ["format", "--language", "gdscript"]
        if self.settings.query_path is not None:
            command += ["--query", str(self.settings.query_path)]
        if self.settings.tolerate_parsing_errors:
            command.append("--tolerate-parsing-errors")
        if self.settings.skip_idempotence:
            command.append("--skip-idempotence")
        return command

    def format(self, document: SyntaxDocument, indent: str) -> Result[str, FormattingError]:
        """Format the document text with Topiary.

        Args:
            document: Document holding the text to format
            indent: Indentation unit for the generated configuration

        Returns:
            Result[str, FormattingError]: Formatted text or error
        """
        if self.settings.configuration_path is not None:
            return self._run(self.build_command(self.settings.configuration_path), document.source)

        with tempfile.TemporaryDirectory(prefix="gdfmt-") as temp_dir:
            configuration = Path(temp_dir) / "languages.ncl"
            configuration.write_text(
                render_configuration(indent, self.settings.grammar_path),
                encoding="utf-8"
            )
            return self._run(self.build_command(configuration), document.source)

    @safe
    def _run_internal(self, command: List[str], source: bytes) -> subprocess.CompletedProcess:
        """Run Topiary; @safe turns raised exceptions into a Failure."""
        return subprocess.run(
            command,
            input=source,
            capture_output=True,
            timeout=self.settings.timeout_seconds
        )

    def _run(self, command: List[str], source: bytes) -> Result[str, FormattingError]:
        result = self._run_internal(command, source)

        if isinstance(result, Failure):
            exc = result.failure()
            if isinstance(exc, subprocess.TimeoutExpired):
                return Failure(engine_timeout(self.name, self.settings.timeout_seconds))
            if isinstance(exc, FileNotFoundError):
                return Failure(FormattingError(
                    message=f"Topiary executable '{self.settings.executable}' not found in PATH",
                    engine=self.name
                ))
            return Failure(FormattingError(
                message=f"Topiary formatting failed: {exc}",
                engine=self.name
            ))

        completed = result.unwrap()
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        if completed.returncode != 0:
            return Failure(FormattingError(
                message=f"Topiary formatting failed: {stderr or f'exit code {completed.returncode}'}",
                engine=self.name,
                exit_code=completed.returncode,
                stderr=stderr
            ))

        try:
            return Success(completed.stdout.decode("utf-8"))
        except UnicodeDecodeError as e:
            return Failure(FormattingError(
                message=f"Failed to parse topiary output as UTF-8: {e}",
                engine=self.name,
                exit_code=completed.returncode,
                stderr=stderr
            ))
