"""
In-memory archive of fetched resources.

Keeps fetched bytes keyed by their archive-relative path and packages them
into a single ZIP file.
"""

import io
import os
import zipfile
from collections import OrderedDict
from typing import Dict, Iterator, List, Optional, Tuple

from ..utils.log import get_logger


def format_bytes(size: int, decimals: int = 2) -> str:
    """
    Format a byte count for display.

    Args:
        size: Number of bytes
        decimals: Maximum number of decimals

    Returns:
        String such as ``"0 Bytes"`` or ``"1.5 KB"``
    """
    if size <= 0:
        return "0 Bytes"

    units = ['Bytes', 'KB', 'MB', 'GB', 'TB']
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1

    text = f"{value:.{max(decimals, 0)}f}"
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return f"{text} {units[index]}"


class Archive:
    """
    Mapping of relative paths to raw bytes.

    Writing an existing path replaces its content (last write wins).
    """

    def __init__(self):
        self._files: Dict[str, bytes] = OrderedDict()
        self.logger = get_logger("archive")

    def put(self, path: str, content: bytes) -> None:
        """
        Store content under a path.

        Args:
            path: Archive-relative path
            content: Raw bytes (text is encoded as UTF-8)
        """
        if isinstance(content, str):
            content = content.encode('utf-8')
        if path in self._files:
            self.logger.debug(f"Replacing {path} in archive")
        self._files[path] = bytes(content)

    def get(self, path: str) -> Optional[bytes]:
        """Get the bytes stored under a path, or None."""
        return self._files.get(path)

    def get_text(self, path: str, encoding: str = 'utf-8') -> Optional[str]:
        """Get the content of a path decoded as text, or None."""
        content = self._files.get(path)
        if content is None:
            return None
        return content.decode(encoding, errors='ignore')

    def paths(self) -> List[str]:
        return list(self._files)

    def files(self) -> List[Tuple[str, int]]:
        """List (path, size) pairs for display."""
        return [(path, len(content)) for path, content in self._files.items()]

    def size_of(self, path: str) -> int:
        content = self._files.get(path)
        return len(content) if content is not None else 0

    @property
    def total_size(self) -> int:
        """Uncompressed size of all stored content."""
        return sum(len(content) for content in self._files.values())

    def serialize(self) -> bytes:
        """
        Package every stored file into a ZIP container.

        Returns:
            ZIP file bytes
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            for path, content in self._files.items():
                zf.writestr(path, content)
        return buffer.getvalue()

    def save(self, output_dir: str, file_name: str) -> str:
        """
        Write the serialized archive to disk.

        Args:
            output_dir: Directory to write into (created if missing)
            file_name: Archive file name

        Returns:
            Absolute path of the written file
        """
        os.makedirs(output_dir, exist_ok=True)
        target = os.path.abspath(os.path.join(output_dir, file_name))
        with open(target, 'wb') as f:
            f.write(self.serialize())
        return target

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._files))

    def __len__(self) -> int:
        return len(self._files)
