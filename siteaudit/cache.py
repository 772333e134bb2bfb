"""Audit result caching and the last-audit snapshot, stored in Redis."""

import hashlib
import json
from urllib.parse import urlsplit, urlunsplit

import structlog
from redis import Redis

from siteaudit.models import AuditPayload
from siteaudit.redis import get_redis_connection

logger = structlog.get_logger(__name__)

# Default cache TTL: 5 minutes
DEFAULT_CACHE_TTL_SECONDS = 300

LAST_AUDIT_KEY = "siteaudit:last"


class AuditCache:
    """
    Cache for audit payloads.

    Results are cached per URL for a short TTL so repeated views do not
    re-run every check. The most recent payload is also kept, without
    expiry, as the single "last audit" snapshot. Without Redis every
    operation is a no-op miss.
    """

    def __init__(
        self,
        redis: Redis | None = None,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        self._redis = redis
        self.ttl_seconds = ttl_seconds
        self._prefix = "siteaudit:result:"

    @property
    def redis(self) -> Redis | None:
        if self._redis is None:
            self._redis = get_redis_connection()
        return self._redis

    def _cache_key(self, url: str, variant: str = "") -> str:
        """
        Cache key for a URL and the run options that shaped its payload.

        Scheme and host are case-insensitive; path and query are not.
        """
        parts = urlsplit(url.strip())
        normalized = urlunsplit(
            (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, parts.fragment)
        )
        digest = hashlib.md5(f"{normalized}|{variant}".encode("utf-8")).hexdigest()
        return f"{self._prefix}{digest}"

    async def get(self, url: str, variant: str = "") -> AuditPayload | None:
        """
        Get the cached payload for a URL.

        Args:
            url: The audited URL
            variant: Run options the payload was built with

        Returns:
            AuditPayload if cached, None otherwise
        """
        redis = self.redis
        if redis is None:
            return None

        try:
            data = redis.get(self._cache_key(url, variant))
            if not data:
                logger.debug("audit_cache_miss", url=url)
                return None
            payload = AuditPayload.from_dict(json.loads(data))
        except Exception as e:
            logger.warning("audit_cache_get_error", url=url, error=str(e))
            return None

        logger.info("audit_cache_hit", url=url, overall=payload.overall)
        return payload

    async def set(self, payload: AuditPayload, variant: str = "") -> bool:
        """Cache a payload under its URL."""
        redis = self.redis
        if redis is None:
            return False

        try:
            redis.setex(
                self._cache_key(payload.url, variant),
                self.ttl_seconds,
                json.dumps(payload.to_dict()),
            )
        except Exception as e:
            logger.warning("audit_cache_set_error", url=payload.url, error=str(e))
            return False

        logger.info("audit_cache_set", url=payload.url, ttl_seconds=self.ttl_seconds)
        return True

    async def invalidate(self, url: str, variant: str = "") -> bool:
        """Drop the cached payload for a URL."""
        redis = self.redis
        if redis is None:
            return False

        try:
            deleted = redis.delete(self._cache_key(url, variant))
        except Exception as e:
            logger.warning("audit_cache_invalidate_error", url=url, error=str(e))
            return False

        logger.info("audit_cache_invalidated", url=url, deleted=bool(deleted))
        return bool(deleted)

    async def save_last(self, payload: AuditPayload) -> bool:
        """Overwrite the last-audit snapshot."""
        redis = self.redis
        if redis is None:
            return False

        try:
            redis.set(LAST_AUDIT_KEY, json.dumps(payload.to_dict()))
        except Exception as e:
            logger.warning("last_audit_save_error", url=payload.url, error=str(e))
            return False
        return True

    async def load_last(self) -> AuditPayload | None:
        """Load the last-audit snapshot, if any."""
        redis = self.redis
        if redis is None:
            return None

        try:
            data = redis.get(LAST_AUDIT_KEY)
            return AuditPayload.from_dict(json.loads(data)) if data else None
        except Exception as e:
            logger.warning("last_audit_load_error", error=str(e))
            return None
