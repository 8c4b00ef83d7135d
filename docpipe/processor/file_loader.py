import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from docpipe.processor.exceptions import SourceFileMissingError, SourceFileTooLargeError


class FileLoader:
    """Validates the canonical stored file and stages a worker-local copy of it."""

    def __init__(self, max_size_bytes: int) -> None:
        self._max_size_bytes = max_size_bytes

    def check(self, storage_path: str) -> Path:
        """Resolve the stored file and enforce existence and size limits.

        Raises:
            SourceFileMissingError: if nothing exists at storage_path.
            SourceFileTooLargeError: if the file exceeds the maximum size.
        """
        path = Path(storage_path)
        if not path.is_file():
            raise SourceFileMissingError(f"File not found: {path.name}")
        size = path.stat().st_size
        if size > self._max_size_bytes:
            raise SourceFileTooLargeError(
                f"File size {size} bytes exceeds maximum limit of {self._max_size_bytes} bytes"
            )
        return path

    @contextmanager
    def stage(self, source: Path) -> Iterator[Path]:
        """Yield a temporary copy of source; the copy is removed on exit.

        The copy keeps the original file name so extension-based checks still work.
        """
        with tempfile.TemporaryDirectory(prefix="docpipe-", ignore_cleanup_errors=True) as tmp:
            local = Path(tmp) / source.name
            shutil.copyfile(source, local)
            yield local
