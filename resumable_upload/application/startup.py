"""
Application startup and configuration logic.

This module handles the initialization and configuration of all application
components, including dependency registration and service startup.
"""

import logging
from typing import Any, List, Optional, Type

from .container import IContainer
from ..core.interfaces.lifecycle import IComponent, IStartable, IStoppable
from ..core.interfaces.messaging import IEventBus
from ..core.interfaces.upload import ISessionStore, IUploadManager
from ..infrastructure.config.models import ApplicationConfig
from ..infrastructure.logging.setup import LoggingManager

logger = logging.getLogger(__name__)


class ApplicationStartup:
    """
    Manages application startup and service configuration.

    Registers services with the DI container and starts them in dependency
    order: logging first, then the event bus, then the upload manager.
    """

    def __init__(self, container: IContainer) -> None:
        self._container = container
        self._started_components: List[IComponent] = []
        self._startup_order: List[Type[Any]] = [
            LoggingManager,
            IEventBus,
            IUploadManager,
        ]

    @property
    def started_components(self) -> List[IComponent]:
        return list(self._started_components)

    async def configure_services(self, config: ApplicationConfig) -> None:
        """
        Configure and register all application services.

        Args:
            config: Application configuration
        """
        from ..core.services.event_bus import EventBus
        from ..infrastructure.services.upload.manager import UploadManager
        from ..infrastructure.services.upload.store import SessionStore

        logger.info("Configuring application services...")

        self._container.register_instance(ApplicationConfig, config)
        self._container.register_instance(LoggingManager, LoggingManager(config.logging))

        event_bus: Optional[EventBus] = None
        if config.events.enabled:
            event_bus = EventBus(
                max_workers=config.events.max_workers,
                queue_size=config.events.queue_size
            )
            self._container.register_instance(IEventBus, event_bus)  # type: ignore[type-abstract]

        store = SessionStore.from_config(config.storage)
        self._container.register_instance(ISessionStore, store)  # type: ignore[type-abstract]

        upload_manager = UploadManager(config.storage, event_bus=event_bus, store=store)
        self._container.register_instance(IUploadManager, upload_manager)  # type: ignore[type-abstract]

        logger.info("Service configuration completed")

    async def start_application(self) -> None:
        """
        Start all application components in the correct order.

        If any component fails to start, the ones already started are
        stopped again before the error propagates.
        """
        logger.info("Starting application components...")

        for service_type in self._startup_order:
            component = self._container.try_resolve(service_type)
            if component is None or not isinstance(component, IStartable):
                continue

            try:
                logger.debug(f"Starting component: {service_type.__name__}")
                await component.start()
            except Exception as e:
                logger.error(f"Failed to start component {service_type.__name__}: {e}")
                await self._stop_started_components()
                raise

            if isinstance(component, IComponent):
                self._started_components.append(component)
            logger.info(f"Started component: {service_type.__name__}")

        logger.info("Application startup completed successfully")

    async def stop_application(self) -> None:
        """Stop all application components in reverse order."""
        logger.info("Stopping application components...")
        await self._stop_started_components()
        logger.info("Application shutdown completed")

    async def _stop_started_components(self) -> None:
        for component in reversed(self._started_components):
            try:
                if isinstance(component, IStoppable):
                    await component.stop()
                    logger.info(f"Stopped component: {component.name}")
            except Exception as e:
                # Keep stopping the rest
                logger.error(f"Error stopping component {component.name}: {e}")

        self._started_components.clear()
