# mpki/utils/files.py

from __future__ import annotations

from pathlib import Path
from typing import Union
import os
import tempfile

from mpki.services.errors import AlreadyExistsError, InvalidKeyError, KeyNotFoundError

StrPath = Union[str, Path]


def read_bytes(path: StrPath) -> bytes:
    """Read a file as bytes, mapping OS failures onto mpki errors."""
    file_path = Path(path)

    try:
        return file_path.read_bytes()
    except FileNotFoundError as e:
        raise KeyNotFoundError(f"File '{file_path}' not found.") from e
    except IsADirectoryError as e:
        raise InvalidKeyError(f"Path '{file_path}' is a directory.") from e
    except PermissionError as e:
        raise InvalidKeyError(f"Permission denied for file '{file_path}'.") from e
    except OSError as err:
        raise InvalidKeyError(f"I/O error while reading file '{file_path}': {err}") from err


def write_bytes(
    path: StrPath,
    data: bytes,
    *,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """
    Write bytes to a file.

    Without `overwrite` the file is created exclusively (O_EXCL), so an existing
    file is never clobbered even when another process creates it concurrently.
    With `overwrite` the content goes to a temp file in the same directory,
    is fsynced and then os.replace()d over the destination.

    Args:
        path: Destination file path.
        data: Bytes to write.
        overwrite: Replace an existing file atomically.
        mode: File permission mode to apply to the written file.

    Returns:
        The Path of the written file.

    Raises:
        AlreadyExistsError: The file exists and overwrite is False.
        InvalidKeyError: Any other I/O failure.
    """
    file_path = Path(path)
    parent = file_path.parent

    try:
        if not overwrite:
            fd = os.open(file_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
            with os.fdopen(fd, 'wb') as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(file_path, mode)
            return file_path

        with tempfile.NamedTemporaryFile(delete=False, dir=str(parent)) as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp_name = tmp.name

        try:
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, file_path)
        except OSError:
            os.unlink(tmp_name)
            raise

        return file_path

    except FileExistsError as e:
        raise AlreadyExistsError(f"File '{file_path}' already exists. Refusing to overwrite.") from e
    except PermissionError as e:
        raise InvalidKeyError(f"Permission denied for file '{file_path}'.") from e
    except IsADirectoryError as e:
        raise InvalidKeyError(f"Path '{file_path}' is a directory.") from e
    except FileNotFoundError as e:
        raise InvalidKeyError(f"Path '{file_path}' not found.") from e
    except OSError as err:
        raise InvalidKeyError(f"I/O error while writing file '{file_path}': {err}") from err
