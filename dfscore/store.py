"""Content-addressed on-disk file storage."""

from __future__ import annotations

import hashlib
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable

from dfscore.cipher import copy_decrypt

DEFAULT_ROOT = "../storedfiles"
_CHUNK_SIZE = 32 * 1024


@dataclass(frozen=True)
class PathKey:
    """Directory path and file name under which a key is stored."""

    path_name: str
    file_name: str

    def full_path(self) -> str:
        return f"{self.path_name}/{self.file_name}"

    def base_folder(self) -> str:
        folder = self.path_name.split("/")[0]
        if not folder:
            raise ValueError("invalid folder structure")
        return folder


PathTransform = Callable[[str], PathKey]


def default_path_transform(key: str) -> PathKey:
    """Store ``key`` in a folder of the same name."""
    return PathKey(path_name=key, file_name=key)


def hash_path_transform(key: str) -> PathKey:
    """Spread keys over nested folders derived from their MD5 digest."""
    digest = hashlib.md5(key.encode()).hexdigest()
    width = len(digest) // 5
    folders = [
        digest[start:start + width]
        for start in range(0, len(digest), width)
        if start + width < len(digest)
    ]
    return PathKey(path_name="/".join(folders), file_name=digest)


class Store:
    """Files kept below a root directory, addressed by key."""

    def __init__(self, root: str | None = None, path_transform: PathTransform | None = None):
        self.root = root or DEFAULT_ROOT
        self.path_transform = path_transform or default_path_transform

    def _open_for_writing(self, key: str) -> BinaryIO:
        path_key = self.path_transform(key)
        (Path(self.root) / path_key.path_name).mkdir(parents=True, exist_ok=True)
        return open(Path(self.root) / path_key.full_path(), "wb")

    def write(self, key: str, reader) -> int:
        """Write everything from ``reader`` under ``key``; return the byte count."""
        written = 0
        with self._open_for_writing(key) as f:
            while chunk := reader.read(_CHUNK_SIZE):
                f.write(chunk)
                written += len(chunk)
        return written

    def write_decrypt(self, key: str, encryption_key: bytes, reader) -> int:
        """Decrypt an IV-prefixed stream from ``reader`` into the file for ``key``."""
        with self._open_for_writing(key) as f:
            return copy_decrypt(encryption_key, reader, f)

    def read(self, key: str) -> tuple[int, BinaryIO]:
        """Return the size and an open binary file for ``key``; the caller closes it."""
        path_key = self.path_transform(key)
        f = open(Path(self.root) / path_key.full_path(), "rb")
        try:
            size = os.fstat(f.fileno()).st_size
        except OSError:
            f.close()
            raise
        return size, f

    def delete(self, key: str) -> None:
        """Remove the top folder holding ``key``."""
        folder = self.path_transform(key).base_folder()
        shutil.rmtree(Path(self.root) / folder, ignore_errors=False) if (
            Path(self.root) / folder
        ).exists() else None

    def has(self, key: str) -> bool:
        return (Path(self.root) / self.path_transform(key).path_name).exists()

    def clear(self) -> None:
        """Remove the whole storage root."""
        if Path(self.root).exists():
            shutil.rmtree(self.root)