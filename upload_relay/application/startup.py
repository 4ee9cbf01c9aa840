"""
Application startup and service wiring.

Builds every relay component from configuration, sweeps stale session
directories before the listener accepts traffic, and starts and stops the
components in dependency order.
"""

from typing import Any, Callable, List, Optional, Type

from loguru import logger

from .container import IContainer
from ..core.interfaces.lifecycle import IComponent
from ..core.interfaces.relay import (
    IBlobStore, IForwardingEngine, ISessionRegistry, IWebhookClient,
)
from ..core.services.completion_scheduler import CompletionScheduler
from ..core.services.session_registry import SessionRegistry
from ..core.services.upload_relay import UploadRelay
from ..infrastructure.clients.webhook import WebhookClient
from ..infrastructure.config.models import RelayConfig
from ..infrastructure.services.forwarding.engine import ForwardingEngine
from ..infrastructure.storage.blob_store import BlobStore
from ..infrastructure.storage.reaper import StartupReaper


class ApplicationStartup:
    """
    Manages application startup and service configuration.

    Components registered before ``configure_services`` (for example a fake
    webhook client in tests) are kept rather than replaced.
    """

    # Stop runs in reverse, so the scheduler drains in-flight forwards
    # before the webhook client closes its session.
    STARTUP_ORDER: List[Type[object]] = [
        IBlobStore,
        ISessionRegistry,
        IWebhookClient,
        IForwardingEngine,
        CompletionScheduler,
        UploadRelay,
    ]

    def __init__(self, container: IContainer) -> None:
        self._container = container
        self._started_components: List[IComponent] = []
        self._config: Optional[RelayConfig] = None

    @property
    def started_components(self) -> List[IComponent]:
        return list(self._started_components)

    def configure_services(self, config: RelayConfig) -> None:
        """Register every relay service with the container."""
        logger.info("Configuring relay services...")
        self._config = config
        c = self._container

        c.register_instance(RelayConfig, config)
        self._register_default(IBlobStore, lambda _: BlobStore(
            config.storage.upload_directory, config.storage.chunk_size))
        self._register_default(ISessionRegistry, lambda _: SessionRegistry())
        self._register_default(IWebhookClient, lambda _: WebhookClient(config.downstream))
        self._register_default(IForwardingEngine, lambda r: ForwardingEngine(
            blob_store=r.resolve(IBlobStore),
            webhook_client=r.resolve(IWebhookClient),
            registry=r.resolve(ISessionRegistry),
        ))
        self._register_default(CompletionScheduler, lambda r: CompletionScheduler(
            registry=r.resolve(ISessionRegistry),
            forwarding_engine=r.resolve(IForwardingEngine),
            inactivity_timeout=config.session.inactivity_timeout,
        ))
        self._register_default(UploadRelay, lambda r: UploadRelay(
            registry=r.resolve(ISessionRegistry),
            blob_store=r.resolve(IBlobStore),
            scheduler=r.resolve(CompletionScheduler),
            forwarding_engine=r.resolve(IForwardingEngine),
            max_file_size=config.limits.max_file_size,
            max_files_per_session=config.limits.max_files_per_session,
        ))
        self._register_default(StartupReaper, lambda _: StartupReaper(
            config.storage.upload_directory, config.storage.retention_seconds))

        logger.info("Service configuration completed")

    async def start_application(self) -> None:
        """Sweep stale sessions, then start components in order."""
        if self._config is None:
            raise RuntimeError("configure_services() must be called first")

        logger.info("Starting relay components...")
        await self._container.resolve(StartupReaper).run()

        for service_type in self.STARTUP_ORDER:
            component = self._container.resolve(service_type)
            if not isinstance(component, IComponent):
                continue
            try:
                await component.start()
            except Exception as e:
                logger.error(f"Failed to start component {component.name}: {e}")
                await self.stop_application()
                raise
            self._started_components.append(component)
            logger.debug(f"Started component: {component.name}")

        logger.info("Relay startup completed")

    async def stop_application(self) -> None:
        """Stop started components in reverse order."""
        if not self._started_components:
            return

        logger.info("Stopping relay components...")
        for component in reversed(self._started_components):
            try:
                await component.stop()
                logger.debug(f"Stopped component: {component.name}")
            except Exception as e:
                logger.error(f"Error stopping component {component.name}: {e}")

        self._started_components.clear()
        logger.info("Relay shutdown completed")

    def _register_default(self, service_type: Type[Any],
                          factory: Callable[[IContainer], Any]) -> None:
        if not self._container.is_registered(service_type):
            self._container.register_factory(service_type, factory)
