# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Discovery of GDScript files from command-line paths."""

from pathlib import Path
from typing import Iterable, List

GDSCRIPT_SUFFIX = ".gd"


def is_gdscript_file(path: Path) -> bool:
    return path.suffix == GDSCRIPT_SUFFIX


def _is_hidden(path: Path, root: Path) -> bool:
    # .godot/, .git/ and friends never hold sources to format
    return any(part.startswith(".") for part in path.relative_to(root).parts)


def discover_gdscript_files(paths: Iterable[Path]) -> List[Path]:
    """Expand command-line paths into the list of files to format.

    Files are kept when they carry the .gd suffix, whether or not they
    exist (a missing file is reported when it is read). Directories are
    searched recursively, skipping hidden entries. Duplicates are dropped
    and the first occurrence decides the order.
    """
    found: List[Path] = []
    seen = set()

    for path in paths:
        if path.is_dir():
            candidates = sorted(
                p for p in path.rglob(f"*{GDSCRIPT_SUFFIX}")
                if p.is_file() and not _is_hidden(p, path)
            )
        elif is_gdscript_file(path):
            candidates = [path]
        else:
            continue

        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                found.append(candidate)

    return found
