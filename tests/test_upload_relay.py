"""
Tests for the ingress decision logic of the upload relay.
"""

import asyncio
from pathlib import Path

import pytest

from helpers import RecordingWebhookClient, incoming
from upload_relay.core.domain.upload import IncomingFile, UploadRequest
from upload_relay.core.exceptions import (
    FileTooLargeError, InvalidSessionIdError, StorageError, TooManyFilesError,
)
from upload_relay.core.services.completion_scheduler import CompletionScheduler
from upload_relay.core.services.session_registry import SessionRegistry
from upload_relay.core.services.upload_relay import (
    MESSAGE_BUFFERED, MESSAGE_FORWARD_FAILED, MESSAGE_FORWARDED, UploadRelay,
)
from upload_relay.infrastructure.services.forwarding.engine import ForwardingEngine
from upload_relay.infrastructure.storage.blob_store import BlobStore


class BrokenReader:
    async def read(self, size: int = -1) -> bytes:
        raise OSError("disk vanished")


@pytest.fixture
def scheduler(registry: SessionRegistry, engine: ForwardingEngine) -> CompletionScheduler:
    # Long enough that no timer fires during a single test
    return CompletionScheduler(registry, engine, inactivity_timeout=5.0)


class TestBuffering:

    async def test_first_request_generates_session_id(self, relay: UploadRelay,
                                                      registry: SessionRegistry) -> None:
        result = await relay.handle_upload(UploadRequest(files=[incoming("a.mp3")]))

        response = result.to_response()
        assert response["success"] is True
        assert response["sessionId"]
        assert response["filesReceived"] == 1
        assert response["message"] == MESSAGE_BUFFERED
        assert result.completed is False
        assert registry.get(result.session_id).pending_timer is not None

    async def test_two_step_upload_forwards_in_order(
        self, relay: UploadRelay, registry: SessionRegistry,
        webhook: RecordingWebhookClient, upload_root: Path
    ) -> None:
        first = await relay.handle_upload(UploadRequest(files=[incoming("a.mp3")]))
        second = await relay.handle_upload(UploadRequest(
            files=[incoming("b.mp3")], session_id=first.session_id, is_last=True))

        assert second.completed is True
        assert second.success is True
        assert second.message == MESSAGE_FORWARDED
        assert second.files_received == 2
        assert webhook.deliveries[0].names == ["a.mp3", "b.mp3"]
        assert first.session_id not in registry
        assert not (upload_root / first.session_id).exists()

    async def test_arrival_order_is_kept_across_batches(
        self, relay: UploadRelay, webhook: RecordingWebhookClient
    ) -> None:
        batches = [["1.wav", "2.wav"], ["3.wav"], ["4.wav", "5.wav"]]
        for names in batches:
            await relay.handle_upload(UploadRequest(
                files=[incoming(n) for n in names], session_id="ordered"))
        await relay.handle_upload(UploadRequest(session_id="ordered", is_last=True))

        assert webhook.deliveries[0].names == ["1.wav", "2.wav", "3.wav", "4.wav", "5.wav"]

    async def test_concurrent_requests_lose_no_files(
        self, relay: UploadRelay, webhook: RecordingWebhookClient
    ) -> None:
        await asyncio.gather(*(
            relay.handle_upload(UploadRequest(files=[incoming(f"{i}.mp3")], session_id="busy"))
            for i in range(4)
        ))
        await relay.handle_upload(UploadRequest(session_id="busy", is_last=True))

        assert sorted(webhook.deliveries[0].names) == ["0.mp3", "1.mp3", "2.mp3", "3.mp3"]

    async def test_completion_with_zero_files_forwards_buffer(
        self, relay: UploadRelay, webhook: RecordingWebhookClient
    ) -> None:
        await relay.handle_upload(UploadRequest(
            files=[incoming("a.mp3"), incoming("b.mp3"), incoming("c.mp3")], session_id="three"))

        result = await relay.handle_upload(UploadRequest(session_id="three", is_last=True))

        assert result.files_received == 3
        assert webhook.deliveries[0].names == ["a.mp3", "b.mp3", "c.mp3"]

    async def test_metadata_is_merged_and_forwarded(
        self, relay: UploadRelay, webhook: RecordingWebhookClient
    ) -> None:
        await relay.handle_upload(UploadRequest(
            files=[incoming("a.mp3")], session_id="meta",
            metadata={"context": "A", "force_theme": "dark"}))
        await relay.handle_upload(UploadRequest(
            session_id="meta", is_last=True,
            metadata={"context": "", "force_type": "note"}))

        assert webhook.deliveries[0].fields == {
            "context": "A", "force_theme": "dark", "force_type": "note"}

    async def test_is_last_on_unknown_id_forwards_empty_session(
        self, relay: UploadRelay, webhook: RecordingWebhookClient
    ) -> None:
        result = await relay.handle_upload(UploadRequest(session_id="fresh", is_last=True))

        assert result.completed is True
        assert result.files_received == 0
        assert webhook.deliveries[0].files == []


class TestCeilings:

    async def test_oversized_file_rejects_whole_request(
        self, relay: UploadRelay, registry: SessionRegistry, upload_root: Path
    ) -> None:
        files = [incoming("small.mp3"), incoming("huge.mp3", b"x" * 2048)]

        with pytest.raises(FileTooLargeError) as exc_info:
            await relay.handle_upload(UploadRequest(files=files, session_id="big"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.filename == "huge.mp3"
        assert "big" not in registry
        assert not (upload_root / "big").exists()

    async def test_oversized_file_leaves_existing_session_untouched(
        self, relay: UploadRelay, registry: SessionRegistry
    ) -> None:
        await relay.handle_upload(UploadRequest(files=[incoming("a.mp3")], session_id="s"))

        with pytest.raises(FileTooLargeError):
            await relay.handle_upload(UploadRequest(
                files=[incoming("huge.mp3", b"x" * 2048)], session_id="s"))

        assert [r.original_name for r in registry.get("s").files] == ["a.mp3"]

    async def test_too_many_files_is_rejected_before_storing(
        self, relay: UploadRelay, registry: SessionRegistry
    ) -> None:
        await relay.handle_upload(UploadRequest(
            files=[incoming(f"{i}.mp3") for i in range(4)], session_id="full"))

        with pytest.raises(TooManyFilesError) as exc_info:
            await relay.handle_upload(UploadRequest(
                files=[incoming("x.mp3"), incoming("y.mp3")], session_id="full"))

        assert exc_info.value.current == 4
        assert exc_info.value.limit == 5
        assert registry.get("full").file_count == 4

    async def test_invalid_session_id_is_rejected(self, relay: UploadRelay,
                                                  registry: SessionRegistry) -> None:
        with pytest.raises(InvalidSessionIdError):
            await relay.handle_upload(UploadRequest(
                files=[incoming("a.mp3")], session_id="../etc"))

        assert registry.size() == 0


class TestFailures:

    async def test_downstream_failure_is_reported(
        self, registry: SessionRegistry, blob_store: BlobStore, upload_root: Path
    ) -> None:
        failing = RecordingWebhookClient(fail_with="Webhook responded with HTTP 500")
        engine = ForwardingEngine(blob_store, failing, registry)
        scheduler = CompletionScheduler(registry, engine, inactivity_timeout=5.0)
        relay = UploadRelay(registry, blob_store, scheduler, engine)

        result = await relay.handle_upload(UploadRequest(
            files=[incoming("a.mp3")], session_id="down", is_last=True))

        response = result.to_response()
        assert response["success"] is False
        assert response["message"] == MESSAGE_FORWARD_FAILED
        assert "HTTP 500" in response["error"]
        assert "down" not in registry
        assert not (upload_root / "down").exists()

    async def test_storage_failure_keeps_stored_siblings(
        self, relay: UploadRelay, registry: SessionRegistry
    ) -> None:
        broken = IncomingFile(filename="bad.mp3", content_type="audio/mpeg",
                              size=3, source=BrokenReader())
        files = [incoming("good.mp3"), broken, incoming("other.mp3")]

        with pytest.raises(StorageError) as exc_info:
            await relay.handle_upload(UploadRequest(files=files, session_id="partial"))

        assert exc_info.value.status_code == 500
        session = registry.get("partial")
        assert [r.original_name for r in session.files] == ["good.mp3", "other.mp3"]
        assert session.pending_timer is not None

    async def test_reused_id_while_forwarding_delivers_both_sets(
        self, registry: SessionRegistry, blob_store: BlobStore, upload_root: Path
    ) -> None:
        slow = RecordingWebhookClient(delay=0.2)
        engine = ForwardingEngine(blob_store, slow, registry)
        scheduler = CompletionScheduler(registry, engine, inactivity_timeout=5.0)
        relay = UploadRelay(registry, blob_store, scheduler, engine)

        first = asyncio.ensure_future(relay.handle_upload(UploadRequest(
            files=[incoming("a.mp3")], session_id="s1", is_last=True)))
        await asyncio.sleep(0.05)
        second = await relay.handle_upload(UploadRequest(
            files=[incoming("b.mp3")], session_id="s1", is_last=True))
        first_result = await first

        assert first_result.success is True
        assert second.success is True
        assert second.files_received == 1
        assert [d.names for d in slow.deliveries] == [["a.mp3"], ["b.mp3"]]
        assert "s1" not in registry
        assert not (upload_root / "s1").exists()


class TestInactivity:

    async def test_quiet_session_is_forwarded_automatically(
        self, registry: SessionRegistry, blob_store: BlobStore,
        engine: ForwardingEngine, webhook: RecordingWebhookClient
    ) -> None:
        scheduler = CompletionScheduler(registry, engine, inactivity_timeout=0.05)
        relay = UploadRelay(registry, blob_store, scheduler, engine)

        await relay.handle_upload(UploadRequest(
            files=[incoming("a.mp3"), incoming("b.mp3")], session_id="idle"))
        await asyncio.sleep(0.25)

        assert webhook.deliveries[0].names == ["a.mp3", "b.mp3"]
        assert "idle" not in registry


class TestHealth:

    async def test_health_reports_active_sessions(self, relay: UploadRelay) -> None:
        await relay.handle_upload(UploadRequest(files=[incoming("a.mp3")], session_id="h"))

        health = relay.health()

        assert health["status"] == "ok"
        assert health["activeSessions"] == 1
        assert health["uptime"] >= 0
