"""Lifecycle events emitted while a project is created.

The provisioner and installer announce each milestone on an ``EventBus``.
Subscribers (the console reporter, a usage tracker, tests) receive an
``EventPayload``. Emission is advisory: a failing subscriber is reported and
skipped, it never changes the outcome of the operation.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from strapi_new.utils import print_warning

if TYPE_CHECKING:
    from strapi_new.scaffolder.models import ProvisionRequest


class LifecycleEvent(str, Enum):
    """Fixed vocabulary of lifecycle events."""

    FILES_COPIED = "didCopyProjectFiles"
    PACKAGE_MANIFEST_WRITTEN = "didWritePackageJSON"
    CONFIG_FILES_WRITTEN = "didCopyConfigurationFiles"
    INSTALL_STARTING = "willInstallProjectDependencies"
    INSTALL_SUCCEEDED = "didInstallProjectDependencies"
    INSTALL_FAILED = "didNotInstallProjectDependencies"
    OPERATION_COMPLETED = "didCreateProject"


@dataclass(frozen=True)
class EventPayload:
    """A single emitted event."""

    event: LifecycleEvent
    request: "ProvisionRequest | None" = None
    error: str | None = None
    emitted_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


Subscriber = Callable[[EventPayload], Union[Awaitable[None], None]]


class EventBus:
    """Fan-out of lifecycle events to any number of subscribers.

    Subscribers may be plain callables or coroutine functions. Every emitted
    payload is also appended to ``history``.
    """

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self._subscribers: list[Subscriber] = list(subscribers or [])
        self.history: list[EventPayload] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        """Register *subscriber* for all future events."""
        self._subscribers.append(subscriber)

    @property
    def names(self) -> list[str]:
        """Names of every event emitted so far, in order."""
        return [p.event.value for p in self.history]

    async def emit(
        self,
        event: LifecycleEvent,
        request: "ProvisionRequest | None" = None,
        error: str | None = None,
    ) -> EventPayload:
        """Deliver *event* to every subscriber and return the payload."""
        payload = EventPayload(event=event, request=request, error=error)
        self.history.append(payload)

        for subscriber in self._subscribers:
            try:
                result: Any = subscriber(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                print_warning(
                    f"Event subscriber failed on {event.value}: {exc}"
                )

        return payload
