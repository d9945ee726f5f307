# src/api/facade.py — v1
"""Public API facade — build and drive a generation orchestrator.

Usage:
    from ridecoach.api.facade import generate_plan
    state = await generate_plan("plan-123")

    from ridecoach.api.facade import create_orchestrator
    orchestrator = create_orchestrator()
    async for event in orchestrator.start_generation(request):
        presenter.apply(event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ridecoach.config.settings import ConfigurationError, Settings
from ridecoach.core.models import CachedArtifact, GenerationRequest, RunState
from ridecoach.generation.executor import StepExecutor
from ridecoach.generation.orchestrator import CancellationToken, GenerationOrchestrator
from ridecoach.generation.staleness import StalenessEvaluator
from ridecoach.remote.retry import RetryConfig
from ridecoach.store.store_factory import create_artifact_store

if TYPE_CHECKING:
    from ridecoach.documents.base_document_store import BaseDocumentStore
    from ridecoach.remote.base_remote import BaseRemoteGeneration
    from ridecoach.store.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)


def create_orchestrator(
    settings: Settings | None = None,
    remote: BaseRemoteGeneration | None = None,
    document_store: BaseDocumentStore | None = None,
    artifact_store: BaseArtifactStore | None = None,
    require_remote: bool = True,
) -> GenerationOrchestrator:
    """Wire an orchestrator from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        remote: Remote generation capability. Defaults to the callable
            endpoint at REMOTE_ENDPOINT_URL.
        document_store: Plan record store. Defaults to a JSON store rooted
            at DOCUMENT_ROOT.
        artifact_store: Artifact backend. Defaults to ARTIFACT_BACKEND.
        require_remote: When False and no endpoint is configured, return a
            read-only orchestrator that can only serve cached artifacts.

    Raises:
        ConfigurationError: If a remote is required but none is configured.
    """
    settings = settings or Settings()

    if document_store is None:
        from ridecoach.documents.json_store import JsonDocumentStore

        document_store = JsonDocumentStore(settings.document_root)

    if artifact_store is None:
        artifact_store = create_artifact_store(settings, document_store=document_store)

    if remote is None and settings.remote_endpoint_url:
        from ridecoach.remote.callable_remote import CallableRemoteGeneration

        remote = CallableRemoteGeneration(
            endpoint_url=settings.remote_endpoint_url,
            auth_token=settings.remote_auth_token,
            timeout_s=settings.remote_timeout_s,
        )
    if remote is None and require_remote:
        raise ConfigurationError(
            "REMOTE_ENDPOINT_URL must be set to run generation"
        )

    executor = None
    if remote is not None:
        executor = StepExecutor(
            remote,
            retry_config=RetryConfig(
                max_retries=settings.step_max_retries,
                base_delay_s=settings.step_retry_base_delay_s,
                backoff_factor=settings.step_retry_backoff_factor,
            ),
        )

    logger.debug(
        "Orchestrator wired: remote=%s, backend=%s, optimistic=%s",
        remote.provider_name if remote else None,
        settings.artifact_backend,
        settings.artifact_optimistic_concurrency,
    )
    return GenerationOrchestrator(
        executor,
        artifact_store,
        staleness=StalenessEvaluator(
            grace_days=settings.stale_grace_days,
            max_age_days=settings.stale_max_age_days,
        ),
        document_store=document_store,
        plan_collection=settings.plan_collection,
        optimistic_concurrency=settings.artifact_optimistic_concurrency,
    )


async def generate_plan(
    source_plan_id: str,
    force_refresh: bool = False,
    settings: Settings | None = None,
    remote: BaseRemoteGeneration | None = None,
    document_store: BaseDocumentStore | None = None,
    artifact_store: BaseArtifactStore | None = None,
    cancel_token: CancellationToken | None = None,
) -> RunState:
    """Run the four-step generation for one plan and return the final state."""
    orchestrator = create_orchestrator(
        settings,
        remote=remote,
        document_store=document_store,
        artifact_store=artifact_store,
    )
    request = GenerationRequest(source_plan_id=source_plan_id, force_refresh=force_refresh)
    return await orchestrator.run(request, cancel_token)


async def get_cached_plan(
    source_plan_id: str,
    settings: Settings | None = None,
    document_store: BaseDocumentStore | None = None,
    artifact_store: BaseArtifactStore | None = None,
) -> CachedArtifact | None:
    """Fetch the persisted artifact with its staleness, without the remote."""
    orchestrator = create_orchestrator(
        settings,
        document_store=document_store,
        artifact_store=artifact_store,
        require_remote=False,
    )
    return await orchestrator.get_cached_if_fresh(source_plan_id)
