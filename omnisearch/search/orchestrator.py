"""Concurrent fan-out of a processed query to every connected provider service."""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from omnisearch.errors import IntegrationMissingError
from omnisearch.integrations.base import IntegrationAdapter, ProviderCredential, provider_label
from omnisearch.logging_config import integration_context
from omnisearch.models.outcome import AdapterCall, AdapterOutcome, AdapterState, AdapterStatus
from omnisearch.models.query import ProcessedQuery

logger = logging.getLogger(__name__)


@dataclass
class IntegrationHealth:
    """Health of one provider service, derived from its latest outcome."""

    status: str
    last_checked: datetime
    last_error: str | None = None
    duration_ms: float = 0.0


class SearchOrchestrator:
    """Runs one task per (adapter, service) pair and settles every call.

    Each call has its own deadline; a global deadline bounds the join.
    Calls still outstanding at the global deadline are cancelled and
    reported as timeouts, and anything they produce afterwards is discarded.
    No call is retried here.
    """

    def __init__(
        self,
        adapter_timeout: float = 8.0,
        search_deadline: float = 15.0,
        max_concurrent_calls: int | None = 32,
        mandatory_provider: str | None = "google",
    ):
        """Initialize orchestrator.

        Args:
            adapter_timeout: Deadline for a single adapter call in seconds
            search_deadline: Global deadline for the whole fan-out in seconds
            max_concurrent_calls: Process-wide cap on in-flight adapter calls
                (None for no cap)
            mandatory_provider: Provider that must be connected, or None
        """
        self.adapter_timeout = adapter_timeout
        self.search_deadline = search_deadline
        self.mandatory_provider = mandatory_provider
        self._semaphore = asyncio.Semaphore(max_concurrent_calls) if max_concurrent_calls else None
        self._health: dict[str, IntegrationHealth] = {}

        logger.info(
            f"Initialized SearchOrchestrator: adapter_timeout={adapter_timeout}s, "
            f"search_deadline={search_deadline}s, max_concurrent_calls={max_concurrent_calls}, "
            f"mandatory_provider={mandatory_provider}"
        )

    def ensure_mandatory_provider(self, credentials: dict[str, ProviderCredential | None]) -> None:
        """Short-circuit a search when the mandatory provider is not connected.

        Raises:
            IntegrationMissingError: If the mandatory provider has no credential
        """
        if not self.mandatory_provider:
            return
        if credentials.get(self.mandatory_provider) is None:
            label = provider_label(self.mandatory_provider)
            logger.warning(f"Mandatory provider '{self.mandatory_provider}' not connected")
            raise IntegrationMissingError(label)

    async def execute(
        self,
        processed_query: ProcessedQuery,
        adapters: dict[str, IntegrationAdapter],
        request_id: str | None = None,
    ) -> list[AdapterOutcome]:
        """Fan the query out and collect one outcome per (adapter, service).

        Args:
            processed_query: Query to send to every adapter
            adapters: Provider id -> adapter (read-only for this request)
            request_id: Request id for log correlation

        Returns:
            Outcomes in (adapter, service) declaration order
        """
        calls: list[tuple[IntegrationAdapter, AdapterCall, int]] = [
            (adapter, AdapterCall(provider, spec.name), spec.limit)
            for provider, adapter in adapters.items()
            for spec in adapter.services
        ]
        if not calls:
            logger.info(f"No adapters available for request {request_id}")
            return []

        logger.info(f"→ Fan-out START: {len(calls)} calls across {len(adapters)} providers")
        started = time.perf_counter()

        tasks = [
            asyncio.create_task(
                self._run_call(adapter, call, processed_query, limit),
                name=f"search:{call.key}",
            )
            for adapter, call, limit in calls
        ]

        done, pending = await asyncio.wait(tasks, timeout=self.search_deadline)

        for task in pending:
            task.cancel()

        outcomes: list[AdapterOutcome] = []
        elapsed_ms = (time.perf_counter() - started) * 1000
        for task, (_, call, _) in zip(tasks, calls):
            if task in done:
                outcome = task.result()
            else:
                call.transition(AdapterState.TIMEOUT)
                outcome = AdapterOutcome.timeout(
                    call.provider,
                    call.service,
                    f"Global search deadline of {self.search_deadline}s exceeded",
                    duration_ms=elapsed_ms,
                )
                with integration_context(call.provider, call.service):
                    logger.warning("⚠ Still running at global deadline, discarded")
            self._record_health(outcome)
            outcomes.append(outcome)

        counts = {status: 0 for status in AdapterStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1
        logger.info(
            f"✓ Fan-out COMPLETE in {elapsed_ms:.0f}ms: "
            f"success={counts[AdapterStatus.SUCCESS]}, failure={counts[AdapterStatus.FAILURE]}, "
            f"timeout={counts[AdapterStatus.TIMEOUT]}"
        )
        return outcomes

    async def _run_call(
        self,
        adapter: IntegrationAdapter,
        call: AdapterCall,
        query: ProcessedQuery,
        limit: int,
    ) -> AdapterOutcome:
        """Run one adapter call to a settled outcome. Never raises (except on cancellation)."""
        with integration_context(call.provider, call.service):
            if self._semaphore is None:
                return await self._invoke(adapter, call, query, limit)
            async with self._semaphore:
                return await self._invoke(adapter, call, query, limit)

    async def _invoke(
        self,
        adapter: IntegrationAdapter,
        call: AdapterCall,
        query: ProcessedQuery,
        limit: int,
    ) -> AdapterOutcome:
        call.transition(AdapterState.RUNNING)
        started = time.perf_counter()

        try:
            payload: Any = await asyncio.wait_for(
                adapter.search(call.service, query, limit),
                timeout=self.adapter_timeout,
            )
        except asyncio.TimeoutError:
            duration_ms = (time.perf_counter() - started) * 1000
            call.transition(AdapterState.TIMEOUT)
            logger.warning(f"⚠ Timed out after {self.adapter_timeout}s")
            return AdapterOutcome.timeout(
                call.provider,
                call.service,
                f"Adapter call exceeded {self.adapter_timeout}s",
                duration_ms=duration_ms,
            )
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            call.transition(AdapterState.FAILURE)
            logger.warning(f"⚠ Search failed: {type(e).__name__}: {e}")
            return AdapterOutcome.failure(call.provider, call.service, str(e) or type(e).__name__, duration_ms)

        duration_ms = (time.perf_counter() - started) * 1000
        call.transition(AdapterState.SUCCESS)
        logger.debug(f"Succeeded in {duration_ms:.0f}ms")
        return AdapterOutcome.success(call.provider, call.service, payload, duration_ms)

    def _record_health(self, outcome: AdapterOutcome) -> None:
        self._health[outcome.key] = IntegrationHealth(
            status="healthy" if outcome.succeeded else "unhealthy",
            last_checked=datetime.now(UTC),
            last_error=outcome.error,
            duration_ms=outcome.duration_ms,
        )

    def get_integration_health(self) -> dict[str, IntegrationHealth]:
        """Latest health per ``provider.service``."""
        return dict(self._health)

    def get_health_summary(self) -> dict[str, Any]:
        health = self.get_integration_health()
        healthy = sum(1 for h in health.values() if h.status == "healthy")
        return {
            "total": len(health),
            "healthy": healthy,
            "unhealthy": len(health) - healthy,
            "integrations": {key: h.status for key, h in sorted(health.items())},
        }
