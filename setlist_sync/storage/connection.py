"""
Redis connection for the setlist store
"""

import redis
import structlog

from setlist_sync.config import Settings
from setlist_sync.errors import TransientIOError

logger = structlog.get_logger()


def create_redis_connection(config: Settings) -> redis.Redis:
    """
    Open and verify the connection used by ``RedisSetlistStore``.

    Args:
        config: Settings holding the redis_* fields

    Returns:
        redis.Redis: Client returning str values

    Raises:
        TransientIOError: If the server does not answer PING
    """
    connection = redis.Redis(
        host=config.redis_host,
        port=config.redis_port,
        db=config.redis_db,
        password=config.redis_password or None,
        socket_timeout=config.redis_socket_timeout,
        decode_responses=True,
    )

    try:
        connection.ping()
    except redis.RedisError as e:
        logger.error(
            "Setlist store unreachable",
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            error=str(e),
        )
        raise TransientIOError(f"Redis unreachable at {config.redis_host}:{config.redis_port}: {e}") from e

    logger.info(
        "Connected to Redis setlist store",
        host=config.redis_host,
        port=config.redis_port,
        db=config.redis_db,
        key_prefix=config.redis_key_prefix,
    )
    return connection
