"""Draft persistence contract.

``DraftStore`` is the boundary the controllers talk to. Its public methods
(``save``, ``load``, ``has``, ``delete``, ``list_ids``) encode values,
retry transient backend failures, and never raise: failures are logged and
resolve to ``False``/``None``/empty. Drafts are a convenience, not part of
the form's correctness.

Backends implement the small private async surface (``_write``, ``_read``,
``_exists``, ``_remove``, ``_keys``) over encoded JSON text and raise
``StorageError`` on failure.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from forms.lib.resilience import RetryConfig, retry_async

logger = logging.getLogger(__name__)

__all__ = [
    "DraftStore",
    "DEFAULT_KEY_PREFIX",
    "encode_value",
    "decode_value",
    "encode_draft",
    "decode_draft",
]

DEFAULT_KEY_PREFIX = "form_foundry_"

DATETIME_TAG = "datetime"
DATE_TAG = "date"


def encode_value(value: Any) -> Any:
    """Tag dates so they survive JSON; recurse through lists and dicts.

    ``datetime`` becomes ``{"type": "datetime", "value": <ISO-8601>}`` and a
    plain ``date`` becomes ``{"type": "date", "value": "YYYY-MM-DD"}``.

    Tuples are written as JSON arrays and come back from ``decode_value`` as
    lists, so a stored tuple does not compare equal to what is loaded. Use
    lists in draft values that need to round-trip exactly.
    """
    if isinstance(value, datetime):
        return {"type": DATETIME_TAG, "value": value.isoformat()}
    if isinstance(value, date):
        return {"type": DATE_TAG, "value": value.isoformat()}
    if isinstance(value, Mapping):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    """Inverse of ``encode_value``."""
    if isinstance(value, dict):
        if set(value) == {"type", "value"} and isinstance(value["value"], str):
            if value["type"] == DATETIME_TAG:
                return datetime.fromisoformat(value["value"])
            if value["type"] == DATE_TAG:
                return date.fromisoformat(value["value"])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def encode_draft(values: Mapping[str, Any]) -> str:
    return json.dumps(encode_value(dict(values)))


def decode_draft(payload: str) -> Dict[str, Any]:
    data = decode_value(json.loads(payload))
    if not isinstance(data, dict):
        raise ValueError(f"Draft payload is {type(data).__name__}, expected an object")
    return data


class DraftStore(ABC):
    """Abstract base class for draft backends.

    Args:
        key_prefix: Prepended to every form id to build the storage key
        retry: Retry behavior for backend calls
    """

    def __init__(
        self,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        retry: Optional[RetryConfig] = None,
    ) -> None:
        self.key_prefix = key_prefix
        self.retry = retry or RetryConfig.default()

    @property
    @abstractmethod
    def backend(self) -> str:
        """Short backend name for logs (e.g. 'memory', 'local', 's3')."""

    def key_for(self, form_id: str) -> str:
        return f"{self.key_prefix}{form_id}"

    # Public contract

    async def save(self, form_id: str, values: Mapping[str, Any]) -> bool:
        """Persist ``values`` under ``form_id``; False on any failure."""
        key = self.key_for(form_id)
        try:
            payload = encode_draft(values)
            await retry_async(lambda: self._write(key, payload), self.retry, f"save draft {key}")
        except Exception as e:
            logger.exception("Failed to save draft %s (%s): %s", key, self.backend, e)
            return False
        logger.debug("Saved draft %s (%s, %d bytes)", key, self.backend, len(payload))
        return True

    async def load(self, form_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored value map, or None if absent or unreadable."""
        key = self.key_for(form_id)
        try:
            payload = await retry_async(lambda: self._read(key), self.retry, f"load draft {key}")
            if payload is None:
                return None
            return decode_draft(payload)
        except Exception as e:
            logger.exception("Failed to load draft %s (%s): %s", key, self.backend, e)
            return None

    async def has(self, form_id: str) -> bool:
        key = self.key_for(form_id)
        try:
            return bool(
                await retry_async(lambda: self._exists(key), self.retry, f"check draft {key}")
            )
        except Exception as e:
            logger.exception("Failed to check draft %s (%s): %s", key, self.backend, e)
            return False

    async def delete(self, form_id: str) -> bool:
        """Remove the draft; True only if one existed and is now gone."""
        key = self.key_for(form_id)
        try:
            removed = await retry_async(
                lambda: self._remove(key), self.retry, f"delete draft {key}"
            )
        except Exception as e:
            logger.exception("Failed to delete draft %s (%s): %s", key, self.backend, e)
            return False
        if removed:
            logger.debug("Deleted draft %s (%s)", key, self.backend)
        return bool(removed)

    async def list_ids(self) -> List[str]:
        """Form ids with a stored draft, sorted."""
        try:
            keys = await retry_async(self._keys, self.retry, "list drafts")
        except Exception as e:
            logger.exception("Failed to list drafts (%s): %s", self.backend, e)
            return []
        return sorted(k[len(self.key_prefix):] for k in keys if k.startswith(self.key_prefix))

    # Backend surface

    @abstractmethod
    async def _write(self, key: str, payload: str) -> None:
        """Store payload under key, replacing any previous value."""

    @abstractmethod
    async def _read(self, key: str) -> Optional[str]:
        """Return the payload, or None if the key is absent."""

    @abstractmethod
    async def _exists(self, key: str) -> bool: ...

    @abstractmethod
    async def _remove(self, key: str) -> bool:
        """Delete key; return whether it existed."""

    @abstractmethod
    async def _keys(self) -> List[str]:
        """All stored keys (prefix included)."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key_prefix={self.key_prefix!r})"
