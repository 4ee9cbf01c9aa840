"""
Tests for service wiring and component lifecycle.
"""

import os
import time
from pathlib import Path

import pytest

from helpers import RecordingWebhookClient
from upload_relay.application.container import Container
from upload_relay.application.startup import ApplicationStartup
from upload_relay.core.interfaces.relay import (
    IBlobStore, IForwardingEngine, ISessionRegistry, IWebhookClient,
)
from upload_relay.core.services.completion_scheduler import CompletionScheduler
from upload_relay.core.services.upload_relay import UploadRelay
from upload_relay.infrastructure.clients.webhook import WebhookClient
from upload_relay.infrastructure.config.models import (
    RelayConfig, SessionConfig, StorageConfig,
)
from upload_relay.infrastructure.storage.reaper import StartupReaper


@pytest.fixture
def config(tmp_path: Path) -> RelayConfig:
    return RelayConfig(
        storage=StorageConfig(upload_directory=str(tmp_path / "uploads")),
        session=SessionConfig(inactivity_timeout=42.0),
    )


class TestApplicationStartup:

    def test_configure_services_registers_everything(self, config: RelayConfig) -> None:
        container = Container()
        ApplicationStartup(container).configure_services(config)

        for service_type in (RelayConfig, IBlobStore, ISessionRegistry, IWebhookClient,
                             IForwardingEngine, CompletionScheduler, UploadRelay,
                             StartupReaper):
            assert container.is_registered(service_type)

        assert isinstance(container.resolve(IWebhookClient), WebhookClient)
        assert container.resolve(CompletionScheduler).inactivity_timeout == 42.0
        assert container.resolve(RelayConfig) is config

    def test_pre_registered_services_are_kept(self, config: RelayConfig) -> None:
        container = Container()
        fake = RecordingWebhookClient()
        container.register_instance(IWebhookClient, fake)

        ApplicationStartup(container).configure_services(config)

        assert container.resolve(IWebhookClient) is fake

    async def test_start_requires_configuration(self) -> None:
        with pytest.raises(RuntimeError):
            await ApplicationStartup(Container()).start_application()

    async def test_start_and_stop_in_order(self, config: RelayConfig) -> None:
        container = Container()
        container.register_instance(IWebhookClient, RecordingWebhookClient())
        startup = ApplicationStartup(container)
        startup.configure_services(config)

        await startup.start_application()
        names = [component.name for component in startup.started_components]

        assert names == ["BlobStore", "SessionRegistry", "ForwardingEngine",
                         "CompletionScheduler", "UploadRelay"]
        assert Path(config.storage.upload_directory).is_dir()

        await startup.stop_application()
        assert startup.started_components == []

    async def test_reaper_runs_before_components(self, config: RelayConfig) -> None:
        stale = Path(config.storage.upload_directory) / "abandoned"
        stale.mkdir(parents=True)
        past = time.time() - 2 * config.storage.retention_seconds
        os.utime(stale, (past, past))

        container = Container()
        container.register_instance(IWebhookClient, RecordingWebhookClient())
        startup = ApplicationStartup(container)
        startup.configure_services(config)

        await startup.start_application()
        try:
            assert not stale.exists()
            assert container.resolve(StartupReaper).last_removed == ["abandoned"]
        finally:
            await startup.stop_application()

    async def test_failed_start_stops_started_components(self, config: RelayConfig) -> None:
        container = Container()
        container.register_instance(IWebhookClient, RecordingWebhookClient())
        startup = ApplicationStartup(container)
        startup.configure_services(config)
        registry = container.resolve(ISessionRegistry)

        async def broken_start() -> None:
            raise RuntimeError("scheduler unavailable")

        container.resolve(CompletionScheduler).start = broken_start

        with pytest.raises(RuntimeError, match="scheduler unavailable"):
            await startup.start_application()

        assert startup.started_components == []
        assert (await registry.check_health())["healthy"] is False
