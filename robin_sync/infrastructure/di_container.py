"""Dependency injection container for the sync daemon."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable, Dict, Type

from robin_sync.application.credentials import CredentialManager
from robin_sync.application.pipeline import DataPipeline
from robin_sync.application.scheduler import SyncScheduler
from robin_sync.config import settings as app_settings
from robin_sync.domain.document_store import DocumentStore
from robin_sync.infrastructure.document_store import JsonFileDocumentStore
from robin_sync.infrastructure.robinhood_client import RobinhoodClient
from robin_sync.infrastructure.token_exchange import RobinhoodTokenExchange
from robin_sync.infrastructure.upload_client import UploadClient

ServiceType = Type[Any]
Factory = Callable[["Container"], Any]


class Container:
    """Minimal service container supporting factories and instances."""

    def __init__(self) -> None:
        self._factories: Dict[ServiceType, Factory] = {}
        self._instances: Dict[ServiceType, Any] = {}

    def register(
        self,
        service: ServiceType,
        *,
        factory: Factory | None = None,
        instance: Any | None = None,
    ) -> None:
        if instance is not None:
            self._instances[service] = instance
            self._factories.pop(service, None)
            return
        if factory is None:
            raise ValueError("Either factory or instance must be provided.")
        self._factories[service] = factory
        self._instances.pop(service, None)

    def resolve(self, service: ServiceType) -> Any:
        if service in self._instances:
            return self._instances[service]
        try:
            factory = self._factories[service]
        except KeyError as exc:
            raise KeyError(f"No provider registered for {service!r}") from exc
        instance = factory(self)
        # one shared instance per service
        self._instances[service] = instance
        return instance


def _register_defaults(container: Container) -> None:
    """Register the production service graph with the container."""
    container.register(
        DocumentStore,
        factory=lambda _c: JsonFileDocumentStore(app_settings.TOKEN_STORE_DIR),
    )
    container.register(RobinhoodTokenExchange, factory=lambda _c: RobinhoodTokenExchange())
    container.register(
        CredentialManager,
        factory=lambda c: CredentialManager(
            store=c.resolve(DocumentStore),
            exchanger=c.resolve(RobinhoodTokenExchange),
        ),
    )
    container.register(UploadClient, factory=lambda _c: UploadClient())
    container.register(
        DataPipeline,
        factory=lambda c: DataPipeline(uploader=c.resolve(UploadClient), client_factory=RobinhoodClient),
    )
    container.register(
        SyncScheduler,
        factory=lambda c: SyncScheduler(
            credentials=c.resolve(CredentialManager),
            pipeline=c.resolve(DataPipeline),
        ),
    )


def build_container() -> Container:
    container = Container()
    _register_defaults(container)
    return container


@lru_cache(maxsize=1)
def get_container() -> Container:
    """Return the process-wide container."""
    return build_container()


__all__ = ["Container", "build_container", "get_container"]
