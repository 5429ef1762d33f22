"""Module for storing the extension settings in a Redis database."""

import json
from typing import Optional, Union

import redis

from charsheet.configs import Settings, settings as default_config
from charsheet.logger_config import get_logger
from charsheet.models.settings_models import SheetSettings
from charsheet.repositories.settings_store import InMemorySettingsStore, SettingsStore

logger = get_logger("charsheet.redis_settings_store")


def str_to_bool(value: str) -> bool:
    """Convert REDIS_SSL env variable to boolean."""
    return value.lower() in ("true", "1", "yes")


class RedisSettingsStore:
    """Handles reading and writing the settings JSON document in Redis."""

    def __init__(
        self,
        host: str,
        port: int = 6379,
        password: Optional[str] = None,
        ssl: Union[str, bool] = False,
        key: str = "character_sheet:settings",
    ) -> None:
        """
        Initialize a connection to the Redis database.

        Args:
            host (str): The hostname or IP address of the Redis server.
            port (int): The port number of the Redis server (default is 6379).
            password (Optional[str]): Password of the Redis server, if any.
            ssl (Union[str, bool]): Whether to connect over TLS.
            key (str): Key holding the settings document.
        """
        ssl = str_to_bool(ssl) if isinstance(ssl, str) else ssl
        self.key = key
        self.handler = redis.Redis(
            host=host,
            port=port,
            password=password,
            ssl=ssl,
            db=0,
            ssl_cert_reqs=None,
        )

    def load(self) -> SheetSettings:
        """Load the stored settings; missing or unreadable data gives defaults."""
        raw = self.handler.get(self.key)
        if not raw:
            return SheetSettings()
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Stored settings under %s are not valid JSON", self.key)
            return SheetSettings()
        return SheetSettings.model_validate(data)

    def save(self, settings: SheetSettings) -> None:
        """Save the settings as a JSON document."""
        self.handler.set(self.key, json.dumps(settings.model_dump(mode="json")))
        logger.info("Saved settings under %s", self.key)


def create_settings_store(config: Optional[Settings] = None) -> SettingsStore:
    """Return a Redis store when a host is configured, else an in-memory one."""
    config = config or default_config
    if not config.REDIS_HOST:
        return InMemorySettingsStore()
    return RedisSettingsStore(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        password=config.REDIS_PASSWORD,
        ssl=config.REDIS_SSL,
        key=config.SETTINGS_KEY,
    )
