"""
storage.py — Where finished packages go.

FileStore.save(name, data) returns an opaque download handle. The CLI uses
LocalFileStore; MemoryFileStore keeps everything in a dict.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Protocol

logger = logging.getLogger(__name__)


class FileStore(Protocol):
    async def save(self, name: str, data: bytes) -> str:
        ...


class LocalFileStore:
    """Writes files under `root` and hands back a file:// URI."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    async def save(self, name: str, data: bytes) -> str:
        path = self.root / Path(name).name
        await asyncio.to_thread(self._write, path, data)
        logger.info(f"Saved {path.name} ({len(data) // 1024} KB)")
        return path.resolve().as_uri()

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


class MemoryFileStore:
    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}

    async def save(self, name: str, data: bytes) -> str:
        self.files[name] = data
        return f"memory://{name}"
