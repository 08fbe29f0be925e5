# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Asynchronous file I/O for the worker pool.

All functions return Result types - no exceptions propagate.
"""

import os
import tempfile
from pathlib import Path
from typing import Union

import aiofiles
import aiofiles.os
from returns.result import Failure, Result, Success

from .errors import FileError, file_not_found, permission_denied

_chmod = aiofiles.os.wrap(os.chmod)


async def read_source_safe(
    path: Union[str, Path],
    encoding: str = 'utf-8'
) -> Result[str, FileError]:
    """
    Read a source file.

    Newlines are kept as they are on disk so that line-break counting sees
    the real bytes.

    Returns:
        Result[str, FileError]: File contents or specific error
    """
    path = Path(path)

    try:
        async with aiofiles.open(path, mode='r', encoding=encoding, newline='') as f:
            return Success(await f.read())
    except FileNotFoundError:
        return Failure(file_not_found(path))
    except PermissionError:
        return Failure(permission_denied(path, "read"))
    except UnicodeDecodeError as e:
        return Failure(FileError(
            message=f"Encoding error reading {path}: {e}",
            path=path,
            operation="read",
            original_error=str(e)
        ))
    except OSError as e:
        return Failure(FileError(
            message=f"Failed to read {path}: {e}",
            path=path,
            operation="read",
            original_error=str(e)
        ))


async def atomic_write_async_safe(
    path: Union[str, Path],
    content: str,
    encoding: str = 'utf-8'
) -> Result[None, FileError]:
    """
    Atomically write file using temp file + rename.

    The original file's permission bits are carried over to the new file.

    Args:
        path: Path to file to write
        content: Content to write
        encoding: Text encoding

    Returns:
        Result[None, FileError]: Success or error
    """
    path = Path(path)
    temp_path = None

    try:
        # Temp file in the same directory so the rename stays on one filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=path.parent,
            prefix=f'.{path.name}.',
            suffix='.tmp'
        )
        temp_path = Path(temp_path_str)
        os.close(temp_fd)

        async with aiofiles.open(temp_path, mode='w', encoding=encoding, newline='') as f:
            await f.write(content)
            await f.flush()

        try:
            stat = await aiofiles.os.stat(path)
            await _chmod(temp_path, stat.st_mode & 0o777)
        except FileNotFoundError:
            pass

        await aiofiles.os.replace(temp_path, path)
        temp_path = None
        return Success(None)

    except PermissionError:
        return Failure(permission_denied(path, "write"))
    except OSError as e:
        return Failure(FileError(
            message=f"OS error during atomic write to {path}: {e}",
            path=path,
            operation="write",
            original_error=str(e)
        ))
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                await aiofiles.os.remove(temp_path)
            except OSError:
                pass
