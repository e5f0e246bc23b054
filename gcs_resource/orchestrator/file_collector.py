"""File collection for the out command."""
import os
from pathlib import Path
from typing import List

from ..errors import ScanError
from ..models import FileEntry


class FileCollector:
    """Collects regular files from a source directory."""

    @staticmethod
    def collect_files(folder: Path) -> List[FileEntry]:
        """
        Collect all files recursively, in walk order.

        Args:
            folder: Root folder to scan

        Returns:
            File entries with paths relative to ``folder``

        Raises:
            ScanError: root is missing, not a directory, or a
                subdirectory cannot be listed
        """
        root = Path(folder).resolve()
        if not root.exists():
            raise ScanError(f"source directory does not exist: {folder}")
        if not root.is_dir():
            raise ScanError(f"source is not a directory: {folder}")

        def on_error(exc: OSError) -> None:
            raise ScanError(f"cannot read {exc.filename}: {exc.strerror or exc}") from exc

        files = []
        for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
            current = Path(dirpath)
            for name in filenames:
                item = current / name
                if not item.is_file():
                    continue
                files.append(
                    FileEntry(path=item, relative_path=item.relative_to(root).as_posix())
                )
        return files
