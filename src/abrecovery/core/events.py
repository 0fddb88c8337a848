"""In-process events published by the job supervisor."""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from abrecovery.core.errors import InvariantError
from abrecovery.core.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "com.deepin.ABRecovery"


class JobKind(str, Enum):
    """The two long-running jobs."""

    BACKUP = "backup"
    RESTORE = "restore"


@dataclass(frozen=True)
class JobEnd:
    """Emitted once when a job finishes.

    Attributes:
        kind: Which job finished
        success: Whether it succeeded
        error_message: Failure description, empty on success
    """

    kind: JobKind
    success: bool
    error_message: str = ""

    @classmethod
    def from_outcome(cls, kind: Any, error: BaseException | None) -> "JobEnd":
        """Build the event for a finished job.

        Args:
            kind: Job kind
            error: Exception the job failed with, or None

        Returns:
            JobEnd event

        Raises:
            InvariantError: If kind is not a known job kind
        """
        try:
            job_kind = JobKind(kind)
        except ValueError:
            raise InvariantError(f"invalid kind {kind!r}") from None

        if error is None:
            return cls(kind=job_kind, success=True)
        # An exception with an empty message must still read as a failure.
        message = str(error) or type(error).__name__
        return cls(kind=job_kind, success=False, error_message=message)


@dataclass(frozen=True)
class PropertyChanged:
    """Emitted when a published status property changes.

    Attributes:
        name: Property name (e.g. "BackingUp")
        value: New value
    """

    name: str
    value: Any


Event = JobEnd | PropertyChanged
Subscriber = Callable[[Event], Awaitable[None] | None]


class EventBus:
    """Fan-out of events to any number of subscribers.

    Subscribers may be plain functions or coroutine functions. A failing
    subscriber is logged and does not affect delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def publish(self, event: Event) -> None:
        """Deliver an event to every subscriber in subscription order.

        Args:
            event: Event to deliver
        """
        for subscriber in list(self._subscribers):
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Event subscriber failed", event=type(event).__name__, error=str(e))
