# Redis: IRIS geometry cache and pending draft selections

import redis.asyncio as redis

from distri.core import config

# One client per process, shared by every request
redis_client = redis.from_url(config.REDIS_URL, decode_responses=True)


def get_redis() -> redis.Redis:
    return redis_client
