"""
Content Cache Utility

Content-addressed cache for provider artifacts. JSON artifacts (OCR results,
definitions, translations) are kept in Redis when it is configured and
reachable, otherwise as JSON files on disk. Binary artifacts (synthesized
audio) are always files, because their paths are handed out as public URLs.

Entries never expire. A miss just means the provider is called again.

Usage:
    from utils.cache import ContentCache

    cache = ContentCache(root=Path("uploads/.cache"), blob_root=Path("uploads/audio"))
    key = ContentCache.key("en-meta", "apple")
    artifact = await cache.get(key)
    if artifact is None:
        await cache.put(key, {"definition": "...", "example": "..."})
"""

import hashlib
import json
from pathlib import Path
from typing import Optional, Any, Dict

import aiofiles
import aiofiles.os

from config.settings import settings
from utils.logging import get_logger

logger = get_logger(__name__)

# Redis client (lazy loaded)
_redis_client = None
_redis_available = None


async def get_redis_client():
    """
    Get Redis client with lazy initialization.

    Returns None if Redis is not configured or unavailable.
    """
    global _redis_client, _redis_available

    # Already checked and not available
    if _redis_available is False:
        return None

    # Already connected
    if _redis_client is not None:
        return _redis_client

    if not settings.REDIS_URL:
        logger.info("Redis not configured - using file cache")
        _redis_available = False
        return None

    try:
        import redis.asyncio as redis

        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )

        await _redis_client.ping()
        logger.info("✅ Redis connected successfully")
        _redis_available = True
        return _redis_client

    except Exception as e:
        logger.warning(f"Redis connection failed: {e} - using file cache")
        _redis_client = None
        _redis_available = False
        return None


def _normalize_part(part: Any) -> str:
    """Trim, collapse whitespace and lowercase one key component."""
    return " ".join(str(part if part is not None else "").split()).lower()


class ContentCache:
    """
    Content-addressed artifact cache.

    Keys look like ``"<provider>:<sha1>"``, where the digest covers the
    normalized input parts. Identical inputs to the same provider always
    map to the same entry.
    """

    REDIS_PREFIX = "snapvocab:cache:"

    def __init__(self, root: Path, blob_root: Path, use_redis: bool = True):
        """
        Args:
            root: Directory for JSON artifacts when Redis is not used
            blob_root: Directory for binary artifacts
            use_redis: Try Redis for JSON artifacts before the file store
        """
        self.root = Path(root)
        self.blob_root = Path(blob_root)
        self._use_redis = use_redis

    @staticmethod
    def key(provider: str, *parts: Any) -> str:
        """Build the cache key for a provider and its normalized inputs."""
        material = "\x1f".join(_normalize_part(part) for part in parts)
        digest = hashlib.sha1(material.encode("utf-8")).hexdigest()
        return f"{provider}:{digest}"

    def _file_for(self, key: str) -> Path:
        return self.root / f"{key.replace(':', '-')}.json"

    def blob_path(self, key: str, extension: str) -> Path:
        """Path at which the binary artifact for ``key`` lives."""
        suffix = extension if extension.startswith(".") else f".{extension}"
        return self.blob_root / f"{key.replace(':', '-')}{suffix}"

    async def _redis(self):
        if not self._use_redis:
            return None
        return await get_redis_client()

    # =========================================================================
    # JSON artifacts
    # =========================================================================

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Read a JSON artifact.

        Returns:
            The cached artifact, or None on a miss or a corrupt entry.
        """
        redis = await self._redis()
        if redis:
            try:
                value = await redis.get(f"{self.REDIS_PREFIX}{key}")
                if value:
                    logger.debug(f"Cache hit (redis): {key}")
                    return json.loads(value)
                return None
            except json.JSONDecodeError as e:
                logger.warning(f"Corrupted cache data for key '{key}': {e}")
                return None
            except Exception as e:
                logger.debug(f"Redis get failed: {e}")

        path = self._file_for(key)
        if not path.exists():
            return None

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
            logger.debug(f"Cache hit (file): {key}")
            return data
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Corrupted cache file '{path.name}': {e}")
            return None

    async def put(self, key: str, artifact: Dict[str, Any]) -> None:
        """Store a JSON artifact under ``key``, replacing any previous value."""
        payload = json.dumps(artifact, ensure_ascii=False)

        redis = await self._redis()
        if redis:
            try:
                await redis.set(f"{self.REDIS_PREFIX}{key}", payload)
                return
            except Exception as e:
                logger.debug(f"Redis set failed: {e}")

        self.root.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self._file_for(key), "w", encoding="utf-8") as f:
            await f.write(payload)

    # =========================================================================
    # Binary artifacts
    # =========================================================================

    def get_blob(self, key: str, extension: str) -> Optional[Path]:
        """Return the stored binary artifact path, or None if absent."""
        path = self.blob_path(key, extension)
        return path if path.is_file() else None

    async def put_blob(self, key: str, data: bytes, extension: str) -> Path:
        """Write a binary artifact and return its path."""
        self.blob_root.mkdir(parents=True, exist_ok=True)
        path = self.blob_path(key, extension)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        return path

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def clear(self, provider: Optional[str] = None, include_blobs: bool = False) -> int:
        """
        Remove cached artifacts.

        Args:
            provider: Only remove entries for this provider tag
            include_blobs: Also delete binary artifacts

        Returns:
            Number of entries removed
        """
        count = 0
        prefix = f"{provider}-" if provider else ""

        redis = await self._redis()
        if redis:
            pattern = f"{self.REDIS_PREFIX}{provider + ':' if provider else ''}*"
            try:
                async for redis_key in redis.scan_iter(match=pattern):
                    await redis.delete(redis_key)
                    count += 1
            except Exception as e:
                logger.debug(f"Redis pattern clear failed: {e}")

        directories = [self.root] + ([self.blob_root] if include_blobs else [])
        for directory in directories:
            if not directory.is_dir():
                continue
            for path in directory.iterdir():
                if path.is_file() and path.name.startswith(prefix):
                    await aiofiles.os.remove(path)
                    count += 1

        logger.info(f"Cleared {count} cache entries")
        return count


# =============================================================================
# Health Check
# =============================================================================

async def check_redis_health() -> bool:
    """Check if Redis is connected and healthy."""
    redis = await get_redis_client()
    if redis:
        try:
            await redis.ping()
            return True
        except Exception:
            return False
    return False
