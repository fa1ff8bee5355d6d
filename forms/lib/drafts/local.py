"""Local filesystem draft backend."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from forms.lib.drafts.base import DraftStore
from forms.lib.errors import StorageError

logger = logging.getLogger(__name__)

__all__ = ["LocalDraftStore"]


class LocalDraftStore(DraftStore):
    """One JSON file per draft under a directory.

    Example:
        >>> store = LocalDraftStore("./.drafts")
        >>> await store.save("signup", values)   # writes ./.drafts/form_foundry_signup.json
    """

    SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path], **kwargs):
        super().__init__(**kwargs)
        self.directory = Path(directory)

    @property
    def backend(self) -> str:
        return "local"

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError("Invalid draft key", key=key, backend=self.backend)
        return self.directory / f"{key}{self.SUFFIX}"

    async def _write(self, key: str, payload: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(self._write_sync, path, payload)

    def _write_sync(self, path: Path, payload: str) -> None:
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            # Replace in one step so readers never see a half-written draft
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(
                f"Failed to write {path}", key=path.stem, backend=self.backend, cause=e
            ) from e

    async def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        return await asyncio.to_thread(self._read_sync, path)

    def _read_sync(self, path: Path) -> Optional[str]:
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Failed to read {path}", key=path.stem, backend=self.backend, cause=e
            ) from e

    async def _exists(self, key: str) -> bool:
        return self._path(key).exists()

    async def _remove(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(
                f"Failed to delete {path}", key=key, backend=self.backend, cause=e
            ) from e
        return True

    async def _keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return [
            p.name[: -len(self.SUFFIX)]
            for p in sorted(self.directory.iterdir())
            if p.is_file() and p.name.endswith(self.SUFFIX) and not p.name.startswith(".")
        ]

    def __repr__(self) -> str:
        return f"LocalDraftStore(directory={str(self.directory)!r}, key_prefix={self.key_prefix!r})"
