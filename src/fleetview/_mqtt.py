"""MQTT change-notification runtime.

Notifications are hints only: a message on an owner's topic means "the
collection changed", and the store answers it by re-reading the
collection. Payloads are never trusted as record data.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from fleetview.config import MqttSettings


def build_client_id() -> str:
    return f"fleetview_{secrets.token_hex(8)}"


class FleetMqttRuntime:
    """Threaded paho-mqtt runtime that hands notifications to an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        settings: MqttSettings,
        on_notification: Callable[[str], None],
        client_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._settings = settings
        self._on_notification = on_notification
        self._client_id = client_id or build_client_id()
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None
        # start/stop run on executor threads; a stop issued mid-connect waits.
        self._lock = threading.RLock()

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    @property
    def topic(self) -> str | None:
        return self._topic

    def start(self, topic: str) -> None:
        """Connect and subscribe to *topic*. Blocks; run it in an executor."""
        with self._lock:
            self.stop()
            self._start(topic)

    def _start(self, topic: str) -> None:
        settings = self._settings
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s client_id=%s",
            settings.host,
            settings.port,
            topic,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()

        self._topic = topic

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s", reason_code)
            if self._topic:
                c.subscribe(self._topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self.handle_message(msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(settings.host, settings.port, keepalive=settings.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def handle_message(self, topic: str, payload: bytes) -> None:
        """Forward a notification for *topic* onto the event loop.

        Runs on the paho network thread.
        """
        if self._topic is not None and topic != self._topic:
            self._logger.debug("Ignoring MQTT message on foreign topic=%s", topic)
            return
        self._logger.debug("MQTT change notification topic=%s size=%d", topic, len(payload))
        try:
            self._loop.call_soon_threadsafe(self._on_notification, topic)
        except RuntimeError:
            # Loop already closed during shutdown.
            self._logger.debug("Dropping MQTT notification, event loop closed", exc_info=True)

    def stop(self) -> None:
        """Stop and disconnect the current client. Blocks while the network thread joins."""
        with self._lock:
            self._stop()

    def _stop(self) -> None:
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
