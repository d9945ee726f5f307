# src/store/store_factory.py — v1
"""Factory for artifact store instantiation."""

from __future__ import annotations

from ridecoach.config.settings import Settings
from ridecoach.documents.base_document_store import BaseDocumentStore
from ridecoach.store.base_artifact_store import BaseArtifactStore


def create_artifact_store(
    settings: Settings | None = None,
    document_store: BaseDocumentStore | None = None,
) -> BaseArtifactStore:
    """Instantiate the configured artifact backend.

    Args:
        settings: Application settings. Defaults to the document backend.
        document_store: Required for the document backend; when omitted a
            JSON document store rooted at DOCUMENT_ROOT is used.

    Returns:
        Configured BaseArtifactStore implementation.
    """
    settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
    backend = settings.artifact_backend

    if backend == "document":
        from ridecoach.store.document_store import DocumentArtifactStore

        if document_store is None:
            from ridecoach.documents.json_store import JsonDocumentStore

            document_store = JsonDocumentStore(settings.document_root)
        return DocumentArtifactStore(
            document_store,
            collection=settings.plan_collection,
            field=settings.plan_artifact_field,
        )

    if backend == "sqlite":
        from ridecoach.store.sqlite_store import SqliteArtifactStore

        return SqliteArtifactStore(
            db_path=settings.artifact_root.expanduser() / "ridecoach_artifacts.db"
        )

    if backend == "redis":
        from ridecoach.store.redis_store import RedisArtifactStore

        if not settings.artifact_redis_url:
            raise ValueError(
                "ARTIFACT_REDIS_URL must be set when ARTIFACT_BACKEND=redis"
            )
        return RedisArtifactStore(redis_url=settings.artifact_redis_url)

    raise ValueError(f"Unsupported artifact backend: {backend!r}")
