"""Draft persistence backends.

Usage:
    from forms.lib.drafts import create_draft_store

    store = create_draft_store(EngineSettings.load())
    await store.save("signup", controller.get_all())
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from forms.lib.drafts.base import DraftStore, decode_draft, encode_draft
from forms.lib.drafts.local import LocalDraftStore
from forms.lib.drafts.memory import MemoryDraftStore
from forms.lib.drafts.s3 import S3DraftStore
from forms.lib.errors import ConfigError
from forms.lib.resilience import RetryConfig
from forms.lib.settings import EngineSettings

__all__ = [
    "DraftStore",
    "MemoryDraftStore",
    "LocalDraftStore",
    "S3DraftStore",
    "create_draft_store",
    "encode_draft",
    "decode_draft",
]


def create_draft_store(
    settings: Optional[EngineSettings] = None,
    project_root: Optional[Path] = None,
) -> DraftStore:
    """Build the draft backend named by ``settings.draft_backend``.

    Raises:
        ConfigError: If the S3 backend is selected without a bucket
    """
    settings = settings or EngineSettings()
    retry = RetryConfig.from_settings(settings)

    if settings.draft_backend == "local":
        return LocalDraftStore(
            settings.get_draft_dir(project_root),
            key_prefix=settings.draft_key_prefix,
            retry=retry,
        )
    if settings.draft_backend == "s3":
        if not settings.s3_bucket:
            raise ConfigError(
                "S3 draft backend requires a bucket",
                suggestion="Set FORMS_S3_BUCKET or forms.s3_bucket in .form-foundry.yaml",
            )
        return S3DraftStore(
            settings.s3_bucket,
            prefix=settings.s3_prefix,
            key_prefix=settings.draft_key_prefix,
            retry=retry,
        )
    return MemoryDraftStore(key_prefix=settings.draft_key_prefix, retry=retry)
