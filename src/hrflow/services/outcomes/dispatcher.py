"""Routes terminal approval outcomes to request-type handlers."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

from hrflow.services.approval.schemas import (
    ApprovalOutcome,
    ApprovalOutcomeEvent,
    RequestType,
)

logger = logging.getLogger(__name__)


@dataclass
class HandlerStats:
    """Statistics for an outcome handler."""

    handler_name: str
    request_type: RequestType
    events_processed: int = 0
    events_failed: int = 0
    total_processing_time_ms: float = 0.0
    last_processed: datetime | None = None
    last_error: str = ""


@dataclass
class DispatcherStats:
    """Statistics for the outcome dispatcher."""

    events_dispatched: int = 0
    events_unhandled: int = 0
    errors: int = 0
    handlers_by_type: dict[str, str] = field(default_factory=dict)


class RequestTypeHandler(ABC):
    """Applies approval outcomes to the business object of one request type."""

    request_type: RequestType

    def __init__(self):
        self.stats = HandlerStats(
            handler_name=self.__class__.__name__,
            request_type=self.request_type,
        )

    @abstractmethod
    async def on_approved(self, event: ApprovalOutcomeEvent) -> None:
        """The final level approved."""

    @abstractmethod
    async def on_rejected(self, event: ApprovalOutcomeEvent) -> None:
        """An approver rejected."""

    async def on_cancelled(self, event: ApprovalOutcomeEvent) -> None:
        """The instance was cancelled administratively."""
        logger.info(
            f"{self.__class__.__name__}: ignoring cancellation of {event.instance_id}"
        )

    async def handle(self, event: ApprovalOutcomeEvent) -> None:
        if event.outcome == ApprovalOutcome.APPROVED:
            await self.on_approved(event)
        elif event.outcome == ApprovalOutcome.REJECTED:
            await self.on_rejected(event)
        elif event.outcome == ApprovalOutcome.CANCELLED:
            await self.on_cancelled(event)

    async def __call__(self, event: ApprovalOutcomeEvent) -> None:
        """Process event with timing and error accounting."""
        start_time = datetime.now(timezone.utc)

        try:
            await self.handle(event)
            self.stats.events_processed += 1
            self.stats.last_processed = datetime.now(timezone.utc)

        except Exception as e:
            self.stats.events_failed += 1
            self.stats.last_error = str(e)
            logger.error(f"{self.__class__.__name__} failed: {e}")
            raise

        finally:
            elapsed = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
            self.stats.total_processing_time_ms += elapsed


class ApprovalOutcomeDispatcher:
    """Maps request types to their outcome handler.

    One handler per request type, registered explicitly. Handler failures are
    logged and counted; the approval decision has already committed by the
    time an outcome is dispatched.
    """

    def __init__(self):
        self._handlers: dict[RequestType, RequestTypeHandler] = {}
        self._stats = DispatcherStats()

    @property
    def stats(self) -> DispatcherStats:
        """Get dispatcher statistics."""
        return self._stats

    def register(self, handler: RequestTypeHandler) -> None:
        """Register the handler for its request type.

        Args:
            handler: Handler instance; replaces any existing one for the type
        """
        previous = self._handlers.get(handler.request_type)
        if previous is not None and previous is not handler:
            logger.warning(
                f"Replacing {previous.__class__.__name__} for "
                f"{handler.request_type.value}"
            )
        self._handlers[handler.request_type] = handler
        self._stats.handlers_by_type[handler.request_type.value] = (
            handler.__class__.__name__
        )
        logger.info(
            f"Registered {handler.__class__.__name__} for {handler.request_type.value}"
        )

    def get_handler(self, request_type: RequestType) -> RequestTypeHandler | None:
        return self._handlers.get(request_type)

    async def dispatch(self, event: ApprovalOutcomeEvent) -> bool:
        """Dispatch an outcome to its handler.

        Args:
            event: Outcome to dispatch

        Returns:
            True if a handler processed the event
        """
        self._stats.events_dispatched += 1

        handler = self._handlers.get(event.request_type)
        if handler is None:
            self._stats.events_unhandled += 1
            logger.debug(f"No handler for request type: {event.request_type.value}")
            return False

        try:
            await handler(event)
        except Exception:
            self._stats.errors += 1
            logger.exception(
                f"Outcome handler error for {event.request_type.value} "
                f"({event.instance_id}, {event.outcome.value})"
            )
            return False

        return True

    def clear_handlers(self) -> None:
        self._handlers.clear()
        self._stats.handlers_by_type.clear()


# Singleton dispatcher instance
_dispatcher: ApprovalOutcomeDispatcher | None = None


def get_outcome_dispatcher() -> ApprovalOutcomeDispatcher:
    """Get or create outcome dispatcher singleton."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = ApprovalOutcomeDispatcher()
    return _dispatcher


def reset_outcome_dispatcher() -> None:
    """Reset outcome dispatcher singleton (for testing)."""
    global _dispatcher
    _dispatcher = None
