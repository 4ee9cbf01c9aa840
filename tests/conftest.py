"""
Shared fixtures for the relay tests.
"""

from pathlib import Path

import pytest

from helpers import RecordingWebhookClient
from upload_relay.core.services.completion_scheduler import CompletionScheduler
from upload_relay.core.services.session_registry import SessionRegistry
from upload_relay.core.services.upload_relay import UploadRelay
from upload_relay.infrastructure.services.forwarding.engine import ForwardingEngine
from upload_relay.infrastructure.storage.blob_store import BlobStore


@pytest.fixture
def webhook() -> RecordingWebhookClient:
    return RecordingWebhookClient()


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def blob_store(upload_root: Path) -> BlobStore:
    return BlobStore(str(upload_root), chunk_size=4)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def engine(blob_store: BlobStore, webhook: RecordingWebhookClient,
           registry: SessionRegistry) -> ForwardingEngine:
    return ForwardingEngine(blob_store=blob_store, webhook_client=webhook, registry=registry)


@pytest.fixture
def scheduler(registry: SessionRegistry, engine: ForwardingEngine) -> CompletionScheduler:
    return CompletionScheduler(registry, engine, inactivity_timeout=0.05)


@pytest.fixture
def relay(registry: SessionRegistry, blob_store: BlobStore, scheduler: CompletionScheduler,
          engine: ForwardingEngine) -> UploadRelay:
    return UploadRelay(
        registry=registry,
        blob_store=blob_store,
        scheduler=scheduler,
        forwarding_engine=engine,
        max_file_size=1024,
        max_files_per_session=5,
    )
