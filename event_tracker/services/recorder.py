"""Recording pipeline: validate, persist, notify."""
from datetime import datetime

import structlog

from ..errors import EventValidationError
from ..event_models import Event, is_known_event_type
from ..ids import IdGenerator
from ..metrics import Metrics
from ..notifications.notifier import SlackNotifier
from ..sinks.base import EventSink

log = structlog.get_logger()


class EventRecorder:
    """
    Funnel every candidate event through the same steps.

    ``validate_and_rectify`` runs first; a rejected event never reaches the
    sink. The sink write is awaited. The log-channel notification is
    scheduled afterwards and never awaited.
    """

    def __init__(
        self,
        sink: EventSink,
        id_generator: IdGenerator,
        notifier: SlackNotifier | None = None,
        metrics: Metrics | None = None,
    ):
        self.sink = sink
        self.id_generator = id_generator
        self.notifier = notifier
        self.metrics = metrics

    async def record(self, event: Event, source: str, notify: bool = True, now: datetime | None = None) -> Event:
        """
        Validate and persist a candidate event.

        Args:
            event: Candidate built by a source adapter
            source: Name of the entry path, for logs and metrics
            notify: Post committed events to the log channel
            now: Clock override for the ``start_time`` default

        Returns:
            The validated, persisted event

        Raises:
            EventValidationError: If the candidate is rejected
            PersistenceError: If the sink write fails
        """
        try:
            event.validate_and_rectify(self.id_generator, now=now)
        except EventValidationError as e:
            log.warning("event.rejected", source=source, error=e.error)
            if self.metrics is not None:
                self.metrics.record_rejection(source)
            raise

        if not is_known_event_type(event.event_type):
            log.info("event.type_unrecognized", event_type=event.event_type, source=source)

        await self.sink.record(event)

        log.info(
            "event.recorded",
            event_id=event.id,
            event_type=event.event_type,
            source=source,
            dry_run=event.dry_run,
        )
        if self.metrics is not None:
            self.metrics.record_event(event.event_type, source, event.dry_run)

        if notify and not event.dry_run and self.notifier is not None:
            self.notifier.notify(event)

        return event
