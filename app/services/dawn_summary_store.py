"""
Dawn summary signal store

Holds the "summary pending" flag and the last daily record per user for
the presentation layer to read and dismiss. Backed by Redis when REDIS_URL
is configured, otherwise by a process-local dict.
"""

import json
from typing import Any, Dict, Optional

import redis.asyncio as redis
import structlog

from app.core.config import settings
from app.domain.models import DailyRecord

logger = structlog.get_logger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.ConnectionPool] = None
_redis_client: Optional[redis.Redis] = None


async def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client with connection pooling
    """
    global _redis_pool, _redis_client

    if _redis_client is None:
        try:
            _redis_pool = redis.ConnectionPool.from_url(settings.REDIS_URL, decode_responses=True)
            _redis_client = redis.Redis(connection_pool=_redis_pool)

            # Test connection
            await _redis_client.ping()
            logger.info("Redis client created successfully")

        except Exception as e:
            logger.error("Failed to create Redis client", error=str(e))
            raise

    return _redis_client


async def close_redis_client() -> None:
    global _redis_pool, _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        _redis_pool = None
        logger.info("Redis connection closed")


class RedisDawnSummaryStore:
    """Redis-based dawn summary flags"""

    def __init__(self, client: Optional[redis.Redis] = None,
                 ttl_seconds: int = settings.DAWN_SUMMARY_TTL_SECONDS):
        self.redis = client
        self.ttl_seconds = ttl_seconds

    async def initialize(self):
        """Initialize Redis connection"""
        self.redis = await get_redis_client()

    def _summary_key(self, user_id: str) -> str:
        return f"dawn:{user_id}"

    async def publish(self, user_id: str, record: Optional[DailyRecord]) -> bool:
        """Raise the pending flag together with the record to show"""
        try:
            if not self.redis:
                await self.initialize()

            payload = {
                "pending": "1",
                "record": json.dumps(record.to_dict() if record else None),
            }
            pipe = self.redis.pipeline()
            pipe.hset(self._summary_key(user_id), mapping=payload)
            pipe.expire(self._summary_key(user_id), self.ttl_seconds)
            await pipe.execute()

            logger.info("Dawn summary published", user_id=user_id,
                        record_date=record.date if record else None)
            return True

        except Exception as e:
            logger.error("Failed to publish dawn summary", user_id=user_id, error=str(e))
            return False

    async def get(self, user_id: str) -> Dict[str, Any]:
        try:
            if not self.redis:
                await self.initialize()

            data = await self.redis.hgetall(self._summary_key(user_id))
            raw_record = json.loads(data["record"]) if data.get("record") else None
            return {
                "pending": data.get("pending") == "1",
                "record": DailyRecord.from_dict(raw_record) if raw_record else None,
            }

        except Exception as e:
            logger.error("Failed to read dawn summary", user_id=user_id, error=str(e))
            return {"pending": False, "record": None}

    async def dismiss(self, user_id: str) -> bool:
        """Clear the pending flag; the last record stays readable"""
        try:
            if not self.redis:
                await self.initialize()

            await self.redis.hset(self._summary_key(user_id), "pending", "0")
            logger.debug("Dawn summary dismissed", user_id=user_id)
            return True

        except Exception as e:
            logger.error("Failed to dismiss dawn summary", user_id=user_id, error=str(e))
            return False


class InMemoryDawnSummaryStore:
    """Process-local dawn summary flags"""

    def __init__(self):
        self._entries: Dict[str, Dict[str, Any]] = {}

    async def publish(self, user_id: str, record: Optional[DailyRecord]) -> bool:
        self._entries[user_id] = {"pending": True, "record": record}
        logger.info("Dawn summary published", user_id=user_id,
                    record_date=record.date if record else None)
        return True

    async def get(self, user_id: str) -> Dict[str, Any]:
        entry = self._entries.get(user_id)
        if entry is None:
            return {"pending": False, "record": None}
        return dict(entry)

    async def dismiss(self, user_id: str) -> bool:
        if user_id in self._entries:
            self._entries[user_id]["pending"] = False
        return True


def build_dawn_summary_store():
    """Store selected by configuration"""
    if settings.REDIS_URL:
        return RedisDawnSummaryStore()
    return InMemoryDawnSummaryStore()
