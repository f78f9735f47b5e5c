"""Composition root and the per-email entry point."""

from __future__ import annotations

import logging
from typing import Callable, List

from .config import PipelineConfig
from .drafting.email_models import DraftState, ErrorCode, ProcessingResult
from .drafting.llm_client import Deadline, GeminiProvider, ModelProvider, ResilientModelClient
from .drafting.orchestrator import DraftOrchestrator, QueryEncoder, log_transition
from .drafting.registry import KeyedRegistry
from .drafting.spam_gate import SpamGate
from .errors import (
    AccountNotFoundError,
    LLMTimeoutError,
    ParseError,
    ProviderError,
    ProviderErrorKind,
    ToneDraftError,
)
from .ingest.normalizer import EmailNormalizer
from .locks import InProcessLeaseService, LeaseService, RedisLeaseService
from .patterns.analyzer import WritingPatternAnalyzer
from .patterns.style_profile import StyleProfileBuilder
from .store import AGGREGATE_KEY, AccountDirectory, InMemoryCorrespondenceStore, JsonProfileStore, ProfileStore
from .vectors.clustering import ClusteringConfig, StyleCluster, StyleClusteringEngine, StyleClusteringService
from .vectors.example_selector import ExampleSelector
from .vectors.retrieval import VectorRetrievalService

LOGGER = logging.getLogger(__name__)


def error_code_for(exc: Exception) -> ErrorCode:
    if isinstance(exc, AccountNotFoundError):
        return ErrorCode.ACCOUNT_NOT_FOUND
    if isinstance(exc, LLMTimeoutError):
        return ErrorCode.LLM_TIMEOUT
    if isinstance(exc, ParseError):
        return ErrorCode.PARSE_ERROR
    return ErrorCode.UNKNOWN


class EmailProcessingPipeline:
    """Turns a raw message plus account ids into a result envelope."""

    def __init__(
        self,
        accounts: AccountDirectory,
        orchestrators: KeyedRegistry[DraftOrchestrator],
        clustering: StyleClusteringService,
        config: PipelineConfig | None = None,
        normalizer: EmailNormalizer | None = None,
    ) -> None:
        self.accounts = accounts
        self.orchestrators = orchestrators
        self.clustering = clustering
        self.config = config or PipelineConfig()
        self.normalizer = normalizer or EmailNormalizer()

    async def process(self, raw_message: str, user_id: str, account_id: str) -> ProcessingResult:
        log_transition(f"for {user_id}/{account_id}", DraftState.RECEIVED)
        try:
            user = await self.accounts.load_user_context(user_id, account_id)
            if user is None:
                raise AccountNotFoundError(f"No account {account_id} for user {user_id}")
            email = self.normalizer.parse(raw_message)
            orchestrator = await self.orchestrators.get(user.provider_id)
            deadline = Deadline(self.config.llm.request_deadline_seconds)
            draft = await orchestrator.generate_draft(email, user, deadline)
        except ToneDraftError as exc:
            LOGGER.error("Draft generation failed for %s/%s (%s): %s", user_id, account_id, exc.code, exc)
            return ProcessingResult(success=False, error=str(exc), error_code=error_code_for(exc), detail_code=exc.code)
        except Exception as exc:
            LOGGER.exception("Unexpected failure generating draft for %s/%s", user_id, account_id)
            return ProcessingResult(success=False, error=str(exc), error_code=ErrorCode.UNKNOWN, detail_code="UNKNOWN")
        return ProcessingResult(success=True, draft=draft)

    async def recluster(self, user_id: str, relationship: str | None = None) -> List[StyleCluster]:
        """Rebuild the stored style clusters that style profiles are read from; meant for background jobs."""
        target = relationship or AGGREGATE_KEY
        clusters = await self.clustering.recluster(user_id, target)
        LOGGER.info("Re-clustered %s/%s into %s style clusters", user_id, target, len(clusters))
        return clusters


def default_provider_factory(config: PipelineConfig) -> Callable[[str], ModelProvider]:
    def factory(provider_id: str) -> ModelProvider:
        if provider_id == GeminiProvider.provider_id:
            return GeminiProvider(config.llm)
        raise ProviderError(ProviderErrorKind.MODEL_NOT_FOUND, f"Unknown model provider: {provider_id}")

    return factory


def build_pipeline(
    config: PipelineConfig | None = None,
    store: InMemoryCorrespondenceStore | None = None,
    profile_store: ProfileStore | None = None,
    leases: LeaseService | None = None,
    encoder: QueryEncoder | None = None,
    provider_factory: Callable[[str], ModelProvider] | None = None,
) -> EmailProcessingPipeline:
    """Wire every component; registries created here live as long as the pipeline."""
    config = config or PipelineConfig()
    store = store or InMemoryCorrespondenceStore()
    profile_store = profile_store or JsonProfileStore(config.patterns.profile_dir)
    if leases is None:
        if config.use_redis_leases:
            leases = RedisLeaseService(config.redis_url, ttl_seconds=config.patterns.lock_ttl_seconds)
        else:
            leases = InProcessLeaseService()
    if encoder is None:
        from .vectors.embeddings import DualEncoder

        encoder = DualEncoder(config.embeddings)
    provider_factory = provider_factory or default_provider_factory(config)

    async def make_client(provider_id: str) -> ResilientModelClient:
        return ResilientModelClient(provider_factory(provider_id), config.llm)

    clients: KeyedRegistry[ResilientModelClient] = KeyedRegistry(make_client, "model client")

    async def make_spam_gate(provider_id: str) -> SpamGate:
        return SpamGate(await clients.get(provider_id), store)

    spam_gates: KeyedRegistry[SpamGate] = KeyedRegistry(make_spam_gate, "spam gate")
    retrieval = VectorRetrievalService(store, config.retrieval)
    selector = ExampleSelector(retrieval, store, config.retrieval)
    profiles = StyleProfileBuilder(store, store)

    async def make_orchestrator(provider_id: str) -> DraftOrchestrator:
        client = await clients.get(provider_id)
        return DraftOrchestrator(
            client=client,
            spam_gate=await spam_gates.get(provider_id),
            selector=selector,
            encoder=encoder,
            analyzer=WritingPatternAnalyzer(client, profile_store, leases, store, config.patterns),
            profiles=profiles,
        )

    orchestrators: KeyedRegistry[DraftOrchestrator] = KeyedRegistry(make_orchestrator, "orchestrator")
    clustering = StyleClusteringService(store, store, StyleClusteringEngine(ClusteringConfig(k=config.cluster_count)))
    return EmailProcessingPipeline(store, orchestrators, clustering, config)
