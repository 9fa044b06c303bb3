"""Best-effort Slack notifications about recorded events."""
from datetime import tzinfo, timezone

import orjson
import structlog

from .slack_client import SlackClient
from ..errors import NotificationError
from ..event_models import Event
from ..services.background import fire_and_forget

log = structlog.get_logger()

TIME_FORMAT = "%a, %d %b %Y %H:%M:%S %Z"


def event_json(event: Event) -> str:
    """Indented JSON rendering of an event, as shown in chat messages."""
    return orjson.dumps(event.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode()


class SlackNotifier:
    """
    Sends chat messages describing persisted events.

    Every public ``notify``/``announce`` call returns immediately; delivery
    runs in the background and failures are only logged.
    """

    def __init__(self, client: SlackClient, log_channel: str = "", tz: tzinfo = timezone.utc, metrics=None):
        self.client = client
        self.log_channel = log_channel
        self.tz = tz
        self.metrics = metrics

    def format_event(self, event: Event) -> str:
        """Render the log-channel message for an event."""
        metadata = event.metadata if isinstance(event.metadata, dict) else {}
        if event.event_type == "PULL REQUEST" and isinstance(metadata.get("pull_request"), dict):
            pull_request = metadata["pull_request"]
            repository = metadata.get("repository") or {}
            user = pull_request.get("user") or {}
            merged_at = event.start_time.astimezone(self.tz).strftime(TIME_FORMAT)
            return (
                f"*PR merged into {repository.get('full_name', '')} by {user.get('login', '')} at {merged_at}*\n"
                f"<{pull_request.get('html_url', '')}|{pull_request.get('title', '')}>\n"
                f"{pull_request.get('body') or ''}"
            )
        return f"```{event_json(event)}```"

    def _record_outcome(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_notification(outcome)

    async def post_to_channel(self, channel: str, text: str) -> bool:
        try:
            await self.client.chat_post_message(channel, text)
        except NotificationError as e:
            log.warning("notification.failed", channel=channel, error=e.error)
            self._record_outcome("failed")
            return False
        log.info("notification.sent", channel=channel)
        self._record_outcome("sent")
        return True

    async def post_ephemeral(self, response_url: str, text: str) -> bool:
        try:
            await self.client.post_to_response_url(response_url, text)
        except NotificationError as e:
            log.warning("notification.failed", target="response_url", error=e.error)
            self._record_outcome("failed")
            return False
        log.info("notification.sent", target="response_url")
        self._record_outcome("sent")
        return True

    async def _post_event(self, event: Event) -> bool:
        return await self.post_to_channel(self.log_channel, self.format_event(event))

    def notify(self, event: Event) -> None:
        """
        Post the event to the log channel, if one is configured.

        Formatting happens in the background task too, so nothing raised
        while building the message reaches the caller.
        """
        if not self.log_channel:
            return
        fire_and_forget(self._post_event(event), name=f"notify-{event.id}")

    def announce_interaction(self, event: Event, user_id: str, channel_id: str, response_url: str) -> None:
        """
        Tell a Slack user what their form submission produced.

        Committed events are announced in the channel; dry runs are answered
        privately through the interaction's ``response_url``.
        """
        fire_and_forget(
            self._announce(event, user_id, channel_id, response_url),
            name=f"announce-{event.id}",
        )

    async def _announce(self, event: Event, user_id: str, channel_id: str, response_url: str) -> bool:
        message = f"<@{user_id}> created event with the following parameters: ```{event_json(event)}```"
        if event.dry_run:
            return await self.post_ephemeral(response_url, message)
        return await self.post_to_channel(channel_id, message)
