"""Tests for draft backends: memory, local filesystem and S3 (moto)."""

import asyncio
import json
from datetime import date, datetime, timezone

import boto3
import pytest
from moto import mock_aws

from forms.lib.drafts import (
    LocalDraftStore,
    MemoryDraftStore,
    S3DraftStore,
    create_draft_store,
    decode_draft,
    encode_draft,
)
from forms.lib.drafts.base import DraftStore
from forms.lib.errors import ConfigError, StorageError
from forms.lib.resilience import RetryConfig
from forms.lib.settings import EngineSettings

NO_RETRY = RetryConfig.none()

SAMPLE = {
    "name": "Ada",
    "born": date(1815, 12, 10),
    "updated": datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
    "history": [{"at": date(2024, 1, 1), "tags": ["a", "b"]}],
    "count": 3,
    "active": True,
    "missing": None,
}


@pytest.fixture
def s3_store(aws_credentials):
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="form-drafts")
        yield S3DraftStore("form-drafts", prefix="drafts/", client=client, retry=NO_RETRY)


@pytest.fixture(params=["memory", "local", "s3"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryDraftStore(retry=NO_RETRY)
    if request.param == "local":
        return LocalDraftStore(tmp_path / "drafts", retry=NO_RETRY)
    return request.getfixturevalue("s3_store")


class TestEncoding:
    def test_dates_are_tagged(self):
        payload = json.loads(encode_draft({"born": date(1815, 12, 10)}))
        assert payload == {"born": {"type": "date", "value": "1815-12-10"}}

    def test_nested_dates_survive(self):
        decoded = decode_draft(encode_draft(SAMPLE))
        assert decoded == SAMPLE
        assert type(decoded["born"]) is date
        assert type(decoded["updated"]) is datetime

    def test_tuples_become_lists(self):
        assert decode_draft(encode_draft({"pair": (1, 2)})) == {"pair": [1, 2]}

    def test_non_object_payload(self):
        with pytest.raises(ValueError, match="expected an object"):
            decode_draft("[1, 2]")


class TestDraftStoreContract:
    """Behavior every backend shares."""

    def test_save_load(self, any_store):
        assert asyncio.run(any_store.save("signup", SAMPLE))
        assert asyncio.run(any_store.load("signup")) == SAMPLE

    def test_missing(self, any_store):
        assert asyncio.run(any_store.load("nope")) is None
        assert not asyncio.run(any_store.has("nope"))
        assert not asyncio.run(any_store.delete("nope"))

    def test_overwrite(self, any_store):
        asyncio.run(any_store.save("signup", {"a": 1}))
        asyncio.run(any_store.save("signup", {"a": 2}))
        assert asyncio.run(any_store.load("signup")) == {"a": 2}

    def test_delete(self, any_store):
        asyncio.run(any_store.save("signup", {"a": 1}))
        assert asyncio.run(any_store.has("signup"))
        assert asyncio.run(any_store.delete("signup"))
        assert not asyncio.run(any_store.has("signup"))

    def test_list_ids(self, any_store):
        for form_id in ("b", "a"):
            asyncio.run(any_store.save(form_id, {}))
        assert asyncio.run(any_store.list_ids()) == ["a", "b"]


class FlakyStore(MemoryDraftStore):
    def __init__(self, failures, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.attempts = 0

    async def _write(self, key, payload):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise StorageError("disk unavailable", key=key, backend=self.backend)
        await super()._write(key, payload)


class BrokenStore(MemoryDraftStore):
    async def _read(self, key):
        raise StorageError("read failed", key=key, backend=self.backend)

    async def _keys(self):
        raise StorageError("list failed", backend=self.backend)


class TestFailureHandling:
    def test_transient_failures_are_retried(self):
        store = FlakyStore(2, retry=RetryConfig(max_attempts=3, backoff_seconds=0))
        assert asyncio.run(store.save("signup", {"a": 1}))
        assert store.attempts == 3

    def test_exhausted_retries_resolve_false(self, caplog):
        store = FlakyStore(5, retry=RetryConfig(max_attempts=2, backoff_seconds=0))
        assert not asyncio.run(store.save("signup", {"a": 1}))
        assert store.attempts == 2
        assert "Failed to save draft form_foundry_signup" in caplog.text

    def test_read_failure_resolves_none(self):
        store = BrokenStore(retry=NO_RETRY)
        assert asyncio.run(store.load("signup")) is None
        assert asyncio.run(store.list_ids()) == []

    def test_unencodable_value_resolves_false(self):
        store = MemoryDraftStore(retry=NO_RETRY)
        assert not asyncio.run(store.save("signup", {"blob": object()}))

    def test_corrupt_payload_resolves_none(self):
        store = MemoryDraftStore(retry=NO_RETRY)
        store._data[store.key_for("signup")] = "{not json"
        assert asyncio.run(store.load("signup")) is None


class TestLocalDraftStore:
    def test_file_layout(self, tmp_path):
        store = LocalDraftStore(tmp_path, key_prefix="app_", retry=NO_RETRY)
        asyncio.run(store.save("signup", {"a": 1}))
        assert (tmp_path / "app_signup.json").exists()
        assert not list(tmp_path.glob(".*.tmp"))

    def test_ignores_foreign_files(self, tmp_path):
        (tmp_path / "notes.txt").write_text("x")
        (tmp_path / "other_prefix_x.json").write_text("{}")
        store = LocalDraftStore(tmp_path, retry=NO_RETRY)
        asyncio.run(store.save("signup", {}))
        assert asyncio.run(store.list_ids()) == ["signup"]

    def test_rejects_path_traversal(self, tmp_path):
        store = LocalDraftStore(tmp_path, key_prefix="", retry=NO_RETRY)
        assert not asyncio.run(store.save("../escape", {}))
        assert not (tmp_path.parent / "escape.json").exists()

    def test_missing_directory_lists_nothing(self, tmp_path):
        store = LocalDraftStore(tmp_path / "absent", retry=NO_RETRY)
        assert asyncio.run(store.list_ids()) == []


class TestS3DraftStore:
    def test_requires_bucket(self):
        with pytest.raises(ValueError, match="s3_bucket is required"):
            S3DraftStore("")

    def test_object_key(self, s3_store):
        asyncio.run(s3_store.save("signup", {"a": 1}))
        obj = s3_store.client.get_object(Bucket="form-drafts", Key="drafts/form_foundry_signup.json")
        assert json.loads(obj["Body"].read()) == {"a": 1}
        assert obj["ContentType"] == "application/json"

    def test_missing_bucket_resolves_false(self, aws_credentials):
        with mock_aws():
            client = boto3.client("s3", region_name="us-east-1")
            store = S3DraftStore("no-such-bucket", client=client, retry=NO_RETRY)
            assert not asyncio.run(store.save("signup", {"a": 1}))
            assert asyncio.run(store.list_ids()) == []

    def test_lazy_client(self, aws_credentials):
        with mock_aws():
            boto3.client("s3", region_name="us-east-1").create_bucket(Bucket="lazy")
            store = S3DraftStore("lazy", retry=NO_RETRY)
            assert asyncio.run(store.save("signup", {"a": 1}))
            assert asyncio.run(store.list_ids()) == ["signup"]


class TestCreateDraftStore:
    def test_default_is_memory(self):
        assert isinstance(create_draft_store(), MemoryDraftStore)

    def test_local(self, tmp_path):
        store = create_draft_store(EngineSettings(draft_backend="local", draft_dir="d"), tmp_path)
        assert isinstance(store, LocalDraftStore)
        assert store.directory == (tmp_path / "d").resolve()

    def test_s3_needs_bucket(self):
        with pytest.raises(ConfigError, match="requires a bucket"):
            create_draft_store(EngineSettings(draft_backend="s3"))

    def test_s3(self):
        store = create_draft_store(EngineSettings(draft_backend="s3", s3_bucket="b", s3_prefix="p/"))
        assert isinstance(store, S3DraftStore)
        assert store.prefix == "p"

    def test_retry_from_settings(self):
        store = create_draft_store(EngineSettings(storage_retries=5, storage_backoff_seconds=0.5))
        assert store.retry.max_attempts == 5
        assert store.retry.backoff_seconds == 0.5

    def test_stores_are_draft_stores(self, tmp_path):
        for backend in ("memory", "local"):
            store = create_draft_store(EngineSettings(draft_backend=backend), tmp_path)
            assert isinstance(store, DraftStore)
