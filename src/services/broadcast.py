"""
Topic-based broadcast channels for cross-client "data changed" signals.

Mirrors the backend platform's broadcast API: a channel is opened on a topic,
handlers are registered per event, and sends reach every other subscriber of the
topic (never the sender itself). Messages are ephemeral and never persisted.
"""
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from core.config import Settings


logger = logging.getLogger(__name__)

REALTIME_BROADCAST_PATH = "/realtime/v1/api/broadcast"

Payload = dict[str, Any]
Handler = Callable[[Payload], Awaitable[None] | None]
Forwarder = Callable[[str, str, Payload], Awaitable[None]]


class BroadcastChannel:
    """A subscription to one topic with per-event handlers."""

    def __init__(self, hub: "BroadcastHub", topic: str) -> None:
        self._hub = hub
        self.topic = topic
        self._handlers: dict[str, list[Handler]] = {}
        self.subscribed = False

    def on(self, event: str, handler: Handler) -> "BroadcastChannel":
        """Register a handler for an event; returns the channel for chaining."""
        self._handlers.setdefault(event, []).append(handler)
        return self

    def subscribe(self) -> "BroadcastChannel":
        """Start receiving messages on the topic."""
        self._hub._attach(self)
        self.subscribed = True
        return self

    async def send(self, event: str, payload: Payload | None = None) -> int:
        """Broadcast to the other subscribers of this topic."""
        return await self._hub.publish(self.topic, event, payload, sender=self)

    async def _dispatch(self, event: str, payload: Payload) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Broadcast handler failed for event '%s' on topic '%s'", event, self.topic,
                )


class BroadcastHub:
    """
    In-process registry of channels keyed by topic.

    The optional forwarder only sends outbound; events published on the
    platform's realtime channel by other deployments are not received here.
    """

    def __init__(self, forward: Forwarder | None = None) -> None:
        self._channels: dict[str, list[BroadcastChannel]] = {}
        self._forward = forward

    def channel(self, topic: str) -> BroadcastChannel:
        """Create an unsubscribed channel on a topic."""
        return BroadcastChannel(self, topic)

    def _attach(self, channel: BroadcastChannel) -> None:
        subscribers = self._channels.setdefault(channel.topic, [])
        if channel not in subscribers:
            subscribers.append(channel)

    def remove_channel(self, channel: BroadcastChannel) -> None:
        """Unsubscribe a channel; it receives nothing afterwards."""
        subscribers = self._channels.get(channel.topic, [])
        if channel in subscribers:
            subscribers.remove(channel)
        if not subscribers:
            self._channels.pop(channel.topic, None)
        channel.subscribed = False

    def subscriber_count(self, topic: str) -> int:
        """Number of channels currently subscribed to a topic."""
        return len(self._channels.get(topic, []))

    async def publish(
        self,
        topic: str,
        event: str,
        payload: Payload | None = None,
        sender: BroadcastChannel | None = None,
    ) -> int:
        """
        Deliver an event to every subscriber of a topic except the sender.

        Returns:
            Number of local channels the event was delivered to.
        """
        payload = payload or {}
        recipients = [c for c in self._channels.get(topic, []) if c is not sender]
        for channel in recipients:
            await channel._dispatch(event, payload)
        logger.debug("Broadcast '%s' on '%s' to %d channel(s)", event, topic, len(recipients))

        if self._forward is not None:
            try:
                await self._forward(topic, event, payload)
            except (httpx.HTTPError, OSError) as e:
                logger.warning("Failed to forward broadcast '%s' on '%s': %s", event, topic, e)
        return len(recipients)


def realtime_forwarder(http_client: httpx.AsyncClient, settings: Settings) -> Forwarder:
    """Forward local broadcasts to the backend platform's realtime REST endpoint."""

    async def forward(topic: str, event: str, payload: Payload) -> None:
        response = await http_client.post(
            f"{settings.supabase_url}{REALTIME_BROADCAST_PATH}",
            json={"messages": [{"topic": topic, "event": event, "payload": payload}]},
            headers={
                "apikey": settings.supabase_anon_key,
                "Authorization": f"Bearer {settings.supabase_anon_key}",
            },
        )
        response.raise_for_status()

    return forward


# Global hub instance (set during app startup)
_broadcast_hub: BroadcastHub | None = None


def get_broadcast_hub() -> BroadcastHub | None:
    """Get the global broadcast hub instance."""
    return _broadcast_hub


def set_broadcast_hub(hub: BroadcastHub | None) -> None:
    """Set the global broadcast hub instance."""
    global _broadcast_hub  # noqa: PLW0603
    _broadcast_hub = hub
