"""
File system utilities for pocketbase-bin.

This module provides:
- Single-entry extraction from release ZIP archives
- Staged writes that only ever expose complete files at their final path
- Atomic text writes for small bookkeeping files
"""

import logging
import os
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from pocketbase_bin.core.exceptions import (
    AmbiguousEntryError,
    ArchiveExtractionError,
    EntryNotFoundError,
    FilesystemError,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

EXECUTABLE_MODE = 0o755


# ============================================================================
# Archive Extraction
# ============================================================================


def _find_entry(zf: zipfile.ZipFile, entry_name: str) -> zipfile.ZipInfo:
    """
    Locate the archive member for entry_name.

    An exact name match wins; otherwise the member whose basename equals
    entry_name is used (e.g. 'pocketbase_0.22.0/pocketbase').

    Raises:
        EntryNotFoundError: If nothing matches
        AmbiguousEntryError: If several members share the basename
    """
    files = [info for info in zf.infolist() if not info.is_dir()]

    for info in files:
        if info.filename == entry_name:
            return info

    candidates = [
        info for info in files if PurePosixPath(info.filename).name == entry_name
    ]
    if not candidates:
        raise EntryNotFoundError(entry_name, zf.filename or "")
    if len(candidates) > 1:
        raise AmbiguousEntryError(entry_name, [info.filename for info in candidates])
    return candidates[0]


def extract_entry(
    archive_path: Union[str, Path],
    target_directory: Union[str, Path],
    entry_name: str,
    executable: bool = False,
) -> Path:
    """
    Extract a single named entry from a ZIP archive.

    The entry is written to a hidden staging file inside target_directory and
    renamed onto ``target_directory / entry_name`` only once it is complete,
    so a failure never leaves a partial file at the final path.

    Args:
        archive_path: Path to the ZIP archive
        target_directory: Directory the entry is placed in
        entry_name: Filename of the entry to extract
        executable: Set executable permission bits before the final rename

    Returns:
        Path to the extracted file

    Raises:
        EntryNotFoundError: If the archive has no such entry
        AmbiguousEntryError: If the entry name is not unique
        ArchiveExtractionError: If the archive cannot be read
        FilesystemError: If the file cannot be written

    Example:
        >>> extract_entry('pocketbase.zip', '.', 'pocketbase', executable=True)
        PosixPath('/work/pocketbase')
    """
    archive_path = Path(archive_path)
    target_directory = Path(target_directory)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    target_directory.mkdir(parents=True, exist_ok=True)
    target_path = target_directory / entry_name

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            info = _find_entry(zf, entry_name)
            logger.debug(f"Extracting {info.filename} from {archive_path.name}")
            with zf.open(info) as source:
                staged_copy(source, target_path, executable=executable)
    except (ArchiveExtractionError, FilesystemError):
        raise
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        zlib.error,
        EOFError,
        OSError,
    ) as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e

    logger.info(f"Extracted {entry_name}")
    return target_path


# ============================================================================
# Safe File Operations
# ============================================================================


def staged_copy(source, destination: Path, executable: bool = False) -> Path:
    """
    Copy a binary stream to destination via a temp file + rename.

    Args:
        source: Readable binary file object
        destination: Final path
        executable: Add executable permission bits before the rename

    Returns:
        destination

    Raises:
        FilesystemError: If the staging file cannot be written or moved
    """
    destination = Path(destination)

    try:
        fd, temp_path_str = tempfile.mkstemp(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".partial"
        )
    except OSError as e:
        raise FilesystemError(
            f"Cannot create staging file ({e.strerror})", destination.parent
        ) from e

    temp_path = Path(temp_path_str)

    try:
        with open(fd, "wb") as f:
            shutil.copyfileobj(source, f)

        if executable:
            make_executable(temp_path)

        temp_path.replace(destination)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise FilesystemError(
            f"Failed to write file ({e.strerror})", destination
        ) from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    return destination


def make_executable(path: Union[str, Path]) -> None:
    """Set rwxr-xr-x permission bits (no-op on Windows)."""
    if IS_WINDOWS:
        return
    path = Path(path)
    path.chmod(path.stat().st_mode | EXECUTABLE_MODE)


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Raises:
        FilesystemError: If the file cannot be written

    Example:
        >>> atomic_write('.pocketbase-version', '0.22.0')
    """
    file_path = Path(file_path)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise FilesystemError(
            f"Cannot write to directory ({e.strerror})", file_path.parent
        ) from e

    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        # Atomic rename (replaces destination if it exists)
        temp_path.replace(file_path)

    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise FilesystemError(f"Failed to write file ({e.strerror})", file_path) from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def remove_file(path: Union[str, Path], missing_ok: bool = True) -> bool:
    """
    Delete a file.

    Returns:
        True if a file was removed

    Raises:
        FilesystemError: If the file exists but cannot be removed
    """
    path = Path(path)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        if missing_ok:
            return False
        raise FilesystemError("File not found", path)
    except OSError as e:
        raise FilesystemError(f"Cannot remove file ({e.strerror})", path) from e


def read_text(path: Union[str, Path], encoding: str = "utf-8") -> Optional[str]:
    """
    Read a small text file.

    Returns:
        File content, or None if missing or not decodable
    """
    try:
        return Path(path).read_text(encoding=encoding)
    except FileNotFoundError:
        return None
    except (UnicodeDecodeError, IsADirectoryError, PermissionError) as e:
        logger.debug(f"Unreadable file {path}: {e}")
        return None
