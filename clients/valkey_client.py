"""
Valkey (Redis-compatible) client used as a shared session storage medium.

Simple wrapper around redis-py. Lets several client processes on one
machine or network share a persisted session the way browser tabs share
local storage. Fail-fast: raises on connection failure, never returns
fallback values; degrading is the caller's decision.
"""

import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Redis-compatible client for Valkey.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set("key", "value")
        value = client.get("key")  # Returns None if missing
    """

    def __init__(self, url: str, key_prefix: str = "reqres:"):
        """
        Initialize Valkey connection.

        Args:
            url: Redis-compatible connection URL (e.g., redis://localhost:6379/0)
            key_prefix: Namespace prepended to every key

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._prefix = key_prefix
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def ping(self) -> bool:
        """
        Health check.

        Returns True if Valkey responds.
        Raises redis.ConnectionError if unreachable.
        """
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        """
        Get value by key.

        Returns None if key doesn't exist (not an error).
        Raises on connection failure.
        """
        return self._client.get(self._key(key))

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """
        Set key to value, optionally with expiration.

        Args:
            key: Key to set
            value: Value to store
            expire_seconds: TTL in seconds (None for no expiration)
        """
        if expire_seconds is not None:
            self._client.setex(self._key(key), expire_seconds, value)
        else:
            self._client.set(self._key(key), value)

    def delete(self, key: str) -> bool:
        """
        Delete key.

        Returns True if key existed and was deleted, False if key didn't exist.
        """
        return self._client.delete(self._key(key)) > 0

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
