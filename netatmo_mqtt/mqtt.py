"""MQTT publisher for Netatmo measurements.

This module wraps a paho-mqtt client that publishes each measurement as
JSON on ``<topic_prefix>/<id>`` and tells registered callbacks when the
broker connection is ready. paho runs its network loop on its own thread,
so connection events are handed back to the asyncio loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

import paho.mqtt.client as mqtt
from paho.mqtt.client import CallbackAPIVersion

from .const import (
    CONF_HOST,
    CONF_MQTT_CLIENT_ID,
    CONF_PASSWORD,
    CONF_PORT,
    CONF_QOS,
    CONF_RETAIN,
    CONF_TOPIC_PREFIX,
    CONF_USERNAME,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from paho.mqtt.client import ConnectFlags, DisconnectFlags
    from paho.mqtt.properties import Properties
    from paho.mqtt.reasoncodes import ReasonCode

    from .models import Measurement

_LOGGER = logging.getLogger(__name__)


class NetatmoMqttPublisher:
    """Publishes measurements to an MQTT broker."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        mqtt_config: dict[str, Any],
        client: mqtt.Client | None = None,
    ) -> None:
        """Initialize the publisher.

        Args:
            loop: Event loop that receives connection callbacks.
            mqtt_config: Validated ``mqtt`` configuration section.
            client: Preconfigured paho client, created from the config if None.

        """
        self._loop = loop
        self._config = mqtt_config
        self._topic_prefix = mqtt_config[CONF_TOPIC_PREFIX].rstrip("/")
        self._qos = mqtt_config[CONF_QOS]
        self._retain = mqtt_config[CONF_RETAIN]
        self._connected = False
        self._connected_callbacks: list[Callable[[], None]] = []

        if client is None:
            client = mqtt.Client(
                client_id=mqtt_config[CONF_MQTT_CLIENT_ID],
                callback_api_version=CallbackAPIVersion.VERSION2,
            )
            if mqtt_config.get(CONF_USERNAME):
                client.username_pw_set(
                    mqtt_config[CONF_USERNAME], mqtt_config.get(CONF_PASSWORD)
                )
        self._client = client
        self._client.on_connect = self.on_connect
        self._client.on_disconnect = self.on_disconnect

    @property
    def connected(self) -> bool:
        """Return True if the broker connection is established."""
        return self._connected

    def register_connected_callback(
        self,
        callback: Callable[[], None],
    ) -> Callable[[], None]:
        """Register a callback run on the event loop each time the broker connects.

        Args:
            callback: Function to call when the connection is ready.

        Returns:
            A function to unregister the callback.

        """
        self._connected_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._connected_callbacks:
                self._connected_callbacks.remove(callback)

        return unregister

    def start(self) -> None:
        """Connect to the broker and start the paho network thread."""
        host = self._config[CONF_HOST]
        port = self._config[CONF_PORT]
        _LOGGER.info("Connecting to MQTT broker at %s:%s", host, port)
        self._client.connect_async(host, port, keepalive=60)
        self._client.loop_start()

    def stop(self) -> None:
        """Disconnect from the broker and stop the network thread."""
        self._client.disconnect()
        self._client.loop_stop()
        self._connected = False
        _LOGGER.info("Disconnected from MQTT broker")

    def publish(self, measurement: Measurement) -> None:
        """Publish a measurement on ``<topic_prefix>/<id>``."""
        topic = f"{self._topic_prefix}/{measurement['id']}"
        result = self._client.publish(
            topic,
            json.dumps(measurement),
            qos=self._qos,
            retain=self._retain,
        )
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            _LOGGER.warning("Failed to publish to %s: %s", topic, result.rc)
            return
        _LOGGER.debug("Published measurement to %s", topic)

    def on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: ConnectFlags,
        reason_code: ReasonCode,
        properties: Properties | None,
    ) -> None:
        """Handle the broker's CONNACK on the paho network thread.

        Args:
            client: paho client that connected.
            userdata: User data set on the client, unused.
            flags: Connection flags from the broker.
            reason_code: Connection result, a failure leaves callbacks untouched.
            properties: MQTT v5 properties, None for MQTT v3.

        """
        if reason_code.is_failure:
            _LOGGER.error("Failed to connect to MQTT broker: %s", reason_code)
            return
        _LOGGER.info("MQTT connection established")
        self._loop.call_soon_threadsafe(self._handle_connected)

    def on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        disconnect_flags: DisconnectFlags,
        reason_code: ReasonCode,
        properties: Properties | None,
    ) -> None:
        """Mark the transport as down; paho reconnects on its own."""
        _LOGGER.warning("Disconnected from MQTT broker, reason_code=%s", reason_code)
        self._loop.call_soon_threadsafe(self._handle_disconnected)

    def _handle_connected(self) -> None:
        self._connected = True
        for callback in list(self._connected_callbacks):
            callback()

    def _handle_disconnected(self) -> None:
        self._connected = False
