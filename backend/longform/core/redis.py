"""
Redis connection for the render farm queue.

The queue render provider hands jobs to RQ over this connection; the
health checks ping it. Nothing else in the editor uses Redis.
"""

import time
from dataclasses import dataclass
from typing import Optional

from redis import ConnectionPool, Redis
from redis.exceptions import ConnectionError, TimeoutError

from .config import get_settings

# Module-level connection pool singleton
_connection_pool: Optional[ConnectionPool] = None


def get_redis_connection() -> Redis:
    """
    Get a Redis client backed by the shared connection pool.

    RQ stores pickled job payloads, so responses are not decoded.
    """
    global _connection_pool

    if _connection_pool is None:
        _connection_pool = ConnectionPool.from_url(
            get_settings().redis_url,
            max_connections=10,
        )
    return Redis(connection_pool=_connection_pool)


@dataclass
class RedisHealthStatus:
    """Health status for Redis connection."""
    healthy: bool
    latency_ms: Optional[float] = None
    error: Optional[str] = None


def check_redis_health(timeout: float = 5.0) -> RedisHealthStatus:
    """
    PING Redis on a fresh connection and measure the latency.

    Never raises; failures are reported in the returned status.
    """
    try:
        with Redis.from_url(
            get_settings().redis_url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        ) as client:
            start = time.perf_counter()
            pong = client.ping()
            latency_ms = (time.perf_counter() - start) * 1000
    except ConnectionError as e:
        return RedisHealthStatus(healthy=False, error=f"Connection failed: {e}")
    except TimeoutError as e:
        return RedisHealthStatus(healthy=False, error=f"Connection timeout: {e}")
    except Exception as e:
        return RedisHealthStatus(healthy=False, error=f"Unexpected error: {e}")

    if not pong:
        return RedisHealthStatus(healthy=False, error="PING returned False")
    return RedisHealthStatus(healthy=True, latency_ms=round(latency_ms, 2))
