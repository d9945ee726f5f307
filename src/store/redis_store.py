# src/store/redis_store.py — v1
"""Redis-based artifact store (ARTIFACT_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments. Compare-and-swap uses
WATCH/MULTI, so a concurrent write aborts the transaction.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from ridecoach.core.errors import ArtifactConflictError, ArtifactWriteError
from ridecoach.core.models import GeneratedArtifact
from ridecoach.store.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "ridecoach:artifact:"


class RedisArtifactStore(BaseArtifactStore):
    """Redis-backed artifact store."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get_artifact(self, source_plan_id: str) -> GeneratedArtifact | None:
        data = self._client.get(f"{_KEY_PREFIX}{source_plan_id}")
        return _decode(source_plan_id, data)

    async def save_artifact(
        self,
        source_plan_id: str,
        artifact: GeneratedArtifact,
        expected_version: int | None = None,
    ) -> GeneratedArtifact:
        from redis.exceptions import RedisError, WatchError

        key = f"{_KEY_PREFIX}{source_plan_id}"
        try:
            with self._client.pipeline() as pipe:
                pipe.watch(key)
                current = _decode(source_plan_id, pipe.get(key))
                current_version = current.version if current is not None else 0
                if expected_version is not None and current_version != expected_version:
                    pipe.unwatch()
                    raise ArtifactConflictError(
                        source_plan_id, expected_version, current_version
                    )

                stored = artifact.model_copy(update={"version": current_version + 1})
                pipe.multi()
                pipe.set(key, stored.model_dump_json())
                pipe.execute()
        except WatchError as e:
            raise ArtifactConflictError(
                source_plan_id,
                expected_version if expected_version is not None else current_version,
                current_version + 1,
            ) from e
        except RedisError as e:
            raise ArtifactWriteError(
                f"Failed to save artifact for '{source_plan_id}': {e}"
            ) from e

        logger.info("Saved artifact for %s (version %d)", source_plan_id, stored.version)
        return stored

    async def delete_artifact(self, source_plan_id: str) -> None:
        """Remove an artifact (cascade from deleting the owning plan)."""
        self._client.delete(f"{_KEY_PREFIX}{source_plan_id}")

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()


def _decode(source_plan_id: str, data: str | None) -> GeneratedArtifact | None:
    if data is None:
        return None
    try:
        return GeneratedArtifact.model_validate(json.loads(data))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Failed to deserialize artifact %s: %s", source_plan_id, e)
        return None
