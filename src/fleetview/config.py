"""Configuration for fleetview."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fleetview._constants import COLLECTION_PATH_TEMPLATE, MQTT_TOPIC_TEMPLATE
from fleetview.exceptions import FleetConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class MqttSettings:
    """Broker settings for collection change notifications.

    Notifications carry no record data. Any message on the owner's topic
    only triggers an immediate re-read of the collection.
    """

    host: str = ""
    port: int = 8883
    tls: bool = True
    username: str | None = None
    password: str | None = None
    keepalive: int = 120
    topic_template: str = MQTT_TOPIC_TEMPLATE


@dataclasses.dataclass(frozen=True)
class FleetConfig:
    """Store and engine configuration.

    Parameters
    ----------
    app_id : str
        Application id used in the collection path.
    project_id : str or None
        Firestore project id. Required by the Firestore adapter only.
    base_url : str
        Firestore REST endpoint.
    api_key : str or None
        Web API key appended as ``key=`` to REST calls.
    auth_token : str or None
        Bearer ID token of the signed-in owner.
    request_timeout : float
        Total timeout in seconds for a single REST call.
    poll_interval : float
        Seconds between collection reads while subscribed.
    poll_failure_limit : int
        Consecutive failed reads tolerated before the subscription is
        reported as dropped.
    page_size : int
        Documents requested per list page.
    strict_numeric : bool
        Reject non-numeric text in numeric draft fields instead of
        coercing it to ``0``.
    mqtt_enabled : bool
        Listen for change notifications over MQTT in addition to polling.
    mqtt : MqttSettings
        Broker settings.
    """

    app_id: str = "default-app-id"
    project_id: str | None = None
    base_url: str = "https://firestore.googleapis.com"
    api_key: str | None = None
    auth_token: str | None = None
    request_timeout: float = 10.0
    poll_interval: float = 5.0
    poll_failure_limit: int = 3
    page_size: int = 300
    collection_template: str = COLLECTION_PATH_TEMPLATE
    strict_numeric: bool = False
    mqtt_enabled: bool = False
    mqtt: MqttSettings = dataclasses.field(default_factory=MqttSettings)

    def collection_path(self, owner_id: str) -> str:
        """Relative document path of *owner_id*'s vehicle collection."""
        if not owner_id:
            raise FleetConfigError("owner_id must be non-empty")
        return self.collection_template.format(app_id=self.app_id, owner_id=owner_id)

    def mqtt_topic(self, owner_id: str) -> str:
        return self.mqtt.topic_template.format(app_id=self.app_id, owner_id=owner_id)

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetConfig:
        """Create configuration from ``FLEET_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        FleetConfig
            Populated configuration.
        """
        env = os.environ

        mqtt_kwargs: dict[str, Any] = {}
        _ENV_MQTT_MAP = {
            "FLEET_MQTT_HOST": "host",
            "FLEET_MQTT_USERNAME": "username",
            "FLEET_MQTT_PASSWORD": "password",
            "FLEET_MQTT_TOPIC_TEMPLATE": "topic_template",
        }
        for env_key, field_name in _ENV_MQTT_MAP.items():
            val = env.get(env_key)
            if val is not None:
                mqtt_kwargs[field_name] = val

        port_env = env.get("FLEET_MQTT_PORT")
        if port_env is not None:
            mqtt_kwargs["port"] = int(port_env)
        keepalive_env = env.get("FLEET_MQTT_KEEPALIVE")
        if keepalive_env is not None:
            mqtt_kwargs["keepalive"] = int(keepalive_env)
        mqtt_kwargs["tls"] = _env_bool(env.get("FLEET_MQTT_TLS"), True)

        # Allow overriding broker fields via a nested dict
        mqtt_overrides = overrides.pop("mqtt", None)
        if isinstance(mqtt_overrides, dict):
            mqtt_kwargs.update(mqtt_overrides)
        elif isinstance(mqtt_overrides, MqttSettings):
            mqtt_kwargs = dataclasses.asdict(mqtt_overrides)

        _ENV_CONFIG_MAP = {
            "FLEET_APP_ID": "app_id",
            "FLEET_PROJECT_ID": "project_id",
            "FLEET_BASE_URL": "base_url",
            "FLEET_API_KEY": "api_key",
            "FLEET_AUTH_TOKEN": "auth_token",
            "FLEET_COLLECTION_TEMPLATE": "collection_template",
        }
        config_kwargs: dict[str, Any] = {"mqtt": MqttSettings(**mqtt_kwargs)}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "FLEET_REQUEST_TIMEOUT": "request_timeout",
            "FLEET_POLL_INTERVAL": "poll_interval",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        _ENV_INT_MAP = {
            "FLEET_POLL_FAILURE_LIMIT": "poll_failure_limit",
            "FLEET_PAGE_SIZE": "page_size",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = int(val)

        if "strict_numeric" not in overrides:
            config_kwargs["strict_numeric"] = _env_bool(env.get("FLEET_STRICT_NUMERIC"), False)
        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("FLEET_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
