"""In-process draft backend."""

from __future__ import annotations

from typing import Dict, List, Optional

from forms.lib.drafts.base import DraftStore

__all__ = ["MemoryDraftStore"]


class MemoryDraftStore(DraftStore):
    """Keeps encoded drafts in a dict.

    Payloads go through the same JSON encoding as the persistent backends,
    so round-trip behavior (tagged dates, lists for tuples) is identical.

    Example:
        >>> store = MemoryDraftStore()
        >>> await store.save("signup", {"email": "ada@example.com"})
        True
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._data: Dict[str, str] = {}

    @property
    def backend(self) -> str:
        return "memory"

    async def _write(self, key: str, payload: str) -> None:
        self._data[key] = payload

    async def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def _exists(self, key: str) -> bool:
        return key in self._data

    async def _remove(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def _keys(self) -> List[str]:
        return list(self._data)
