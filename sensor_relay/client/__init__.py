"""On-device side of the relay: HTTP client, heartbeat and listening session."""

from sensor_relay.client.api import RelayClient
from sensor_relay.client.heartbeat import DeviceHeartbeat, DeviceInfo, battery_percent
from sensor_relay.client.session import ListeningSession, EVENT_TYPES

__all__ = [
    "RelayClient",
    "DeviceHeartbeat",
    "DeviceInfo",
    "battery_percent",
    "ListeningSession",
    "EVENT_TYPES",
]
