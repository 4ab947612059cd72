"""AI config manager: per-user provider configurations, one active at a time.

Activation is serialized through a single writer lock and runs as one
``BEGIN IMMEDIATE`` transaction, so concurrent activations for a user commit
one after another and the last committed one wins. The partial unique index on
``ai_configs(user_id) WHERE is_active = 1`` rejects any write that would leave
two active rows.
"""

import logging
import sqlite3
import threading

from jobpipe.core.db import (
    activate_ai_config,
    deactivate_ai_config,
    get_active_ai_config,
    get_ai_config,
    insert_ai_config,
    list_ai_configs,
)
from jobpipe.core.errors import ConfigNotFoundError, ConfigValidationError
from jobpipe.core.schemas import AIConfig, AIProvider
from jobpipe.llm import get_provider

logger = logging.getLogger(__name__)


class AIConfigManager:
    """Stores and activates AI provider configurations.

    Usage::

        manager = AIConfigManager(conn)
        cfg = manager.create_config("user-1", "self-hosted", "llama3",
                                    endpoint="http://gpu-box:11434")
        manager.activate("user-1", cfg.id)
        active = manager.get_active("user-1")  # None → criteria-only filtering
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def list_configs(self, user_id: str) -> list[AIConfig]:
        """Return the user's configurations, most recently selected first."""
        with self._lock:
            return list_ai_configs(self._conn, user_id)

    def get_config(self, user_id: str, config_id: int) -> AIConfig:
        with self._lock:
            config = get_ai_config(self._conn, user_id, config_id)
        if config is None:
            raise ConfigNotFoundError(user_id, config_id)
        return config

    def create_config(
        self,
        user_id: str,
        provider: AIProvider | str | None,
        model: str | None,
        endpoint: str | None = None,
        credential: str | None = None,
    ) -> AIConfig:
        """Create an inactive configuration.

        Raises:
            ConfigValidationError: If provider or model is missing or unknown.
        """
        if not user_id or not user_id.strip():
            msg = "user id is required"
            raise ConfigValidationError(msg)
        if not provider:
            msg = "provider is required"
            raise ConfigValidationError(msg)
        if not model or not model.strip():
            msg = "model is required"
            raise ConfigValidationError(msg)
        try:
            backend = get_provider(provider)
        except ValueError as e:
            raise ConfigValidationError(str(e)) from None

        endpoint = endpoint.strip() if endpoint and endpoint.strip() else None
        if endpoint and not endpoint.startswith(("http://", "https://")):
            msg = f"endpoint must be an http(s) URL, got '{endpoint}'"
            raise ConfigValidationError(msg)
        credential = credential.strip() if credential and credential.strip() else None

        with self._lock:
            config = insert_ai_config(
                self._conn,
                user_id,
                backend.provider_id,
                model.strip(),
                endpoint=endpoint,
                credential=credential,
            )
        logger.info(
            "Created AI config %d for '%s' (%s, %s)",
            config.id, user_id, config.provider.value, config.model,
        )
        return config

    def activate(self, user_id: str, config_id: int) -> AIConfig:
        """Make config_id the user's only active configuration.

        Raises:
            ConfigNotFoundError: If the config does not belong to the user.
        """
        with self._lock:
            config = activate_ai_config(self._conn, user_id, config_id)
        if config is None:
            raise ConfigNotFoundError(user_id, config_id)
        logger.info("Activated AI config %d for '%s'", config_id, user_id)
        return config

    def deactivate(self, user_id: str, config_id: int) -> AIConfig:
        with self._lock:
            config = deactivate_ai_config(self._conn, user_id, config_id)
        if config is None:
            raise ConfigNotFoundError(user_id, config_id)
        return config

    def get_active(self, user_id: str) -> AIConfig | None:
        with self._lock:
            return get_active_ai_config(self._conn, user_id)
