"""Shared pytest configuration and fixtures for the gdfmt test suite.

The external Topiary pass is replaced by small fake engines so the
post-processing pipeline can be tested on its own. Fixtures defined here
are automatically available to all tests without explicit imports.
"""

import sys
from pathlib import Path
from typing import Callable, List

import pytest
from returns.result import Failure, Success

# Add src to path for imports during testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gdfmt.cache import FormatterCache
from gdfmt.errors import FormattingError, ReorderError


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (may require Topiary)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow (>1 second execution time)"
    )


# ============================================================================
# Fake Engines
# ============================================================================

class IdentityEngine:
    """Formatting engine that hands the text back unchanged.

    Records the indentation unit of every call.
    """

    name = "identity"

    def __init__(self):
        self.indents: List[str] = []

    def format(self, document, indent):
        self.indents.append(indent)
        return Success(document.text)


class ScriptedEngine:
    """Formatting engine that returns a fixed text."""

    name = "scripted"

    def __init__(self, output: str):
        self.output = output

    def format(self, document, indent):
        return Success(self.output)


class FailingEngine:
    """Formatting engine that always fails like a crashing Topiary."""

    name = "failing"

    def format(self, document, indent):
        return Failure(FormattingError(
            message="Topiary formatting failed: parse error at line 1",
            engine=self.name,
            exit_code=1,
            stderr="parse error at line 1"
        ))


class StaticReorder:
    """Reorder pass returning a fixed text."""

    def __init__(self, output: str):
        self.output = output

    def reorder(self, document):
        return Success(self.output)


class FailingReorder:
    """Reorder pass that always fails."""

    def reorder(self, document):
        return Failure(ReorderError(message="unsupported declaration order"))


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def cache() -> FormatterCache:
    """Parser and compiled queries for the default configuration."""
    return FormatterCache.create()


@pytest.fixture
def parser(cache):
    return cache.parser


@pytest.fixture
def identity_engine() -> IdentityEngine:
    return IdentityEngine()


@pytest.fixture
def failing_engine() -> FailingEngine:
    return FailingEngine()


@pytest.fixture
def gd_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a GDScript file under tmp_path.

    Returns:
        Callable taking (name, content) and returning the written path.
    """
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path
    return _write
