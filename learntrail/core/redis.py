# ruff: noqa: PLW0603
"""Redis connection management.

Provides the async Redis client backing the remote progress store and an
optimistic-locking helper for read-modify-write updates of a single key.
"""

from collections.abc import Callable

import redis.asyncio as redis
from redis.exceptions import WatchError

from learntrail.config import get_settings
from learntrail.core.logging import get_logger


logger = get_logger(__name__)

# Global Redis client
_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection pool."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def progress_key(learner_id: str) -> str:
    """Key holding one learner's progress snapshot."""
    return f"progress:learner:{learner_id}"


async def update_with_retry(
    client: redis.Redis,
    key: str,
    transform: Callable[[str | None], str],
    max_attempts: int = 10,
) -> str:
    """Atomically replace a string value computed from its current value.

    Runs ``GET`` and ``SET`` inside a ``WATCH``/``MULTI``/``EXEC``
    transaction. When another client writes ``key`` in between, the
    transaction is discarded and ``transform`` runs again on the new value.

    Returns:
        The value that was stored

    Raises:
        WatchError: If ``key`` kept changing for ``max_attempts`` rounds
    """
    attempt = 0
    async with client.pipeline(transaction=True) as pipe:
        while True:
            attempt += 1
            try:
                await pipe.watch(key)
                value = transform(await pipe.get(key))
                pipe.multi()
                pipe.set(key, value)
                await pipe.execute()
                return value
            except WatchError:
                logger.debug("redis_watch_conflict", key=key, attempt=attempt)
                if attempt >= max_attempts:
                    raise
