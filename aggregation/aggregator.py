"""
Report Aggregator - Concurrent fan-out over capability chains.

============================================================
RESPONSIBILITY
============================================================
Builds one Report per request:

1. Validate the request (token key, capabilities, deadline)
2. Run every requested capability's fallback chain concurrently
3. Stop waiting at the deadline; unsettled chains become TIMEOUT
4. Emit one FetchEvent per capability
5. Score indicators over whatever succeeded
6. Assemble the Report

============================================================
DESIGN PRINCIPLES
============================================================
- Every requested capability appears in the report
- Provider and chain failures never raise out of build_report()
- Only programming errors raise (InvalidReportRequestError)
- The aggregator keeps no reference to the reports it builds

============================================================
"""

import asyncio
import logging
import time
from typing import Iterable, Mapping, Optional, Union

from cache_store import CacheHousekeeper
from core.clock import ClockProtocol, SystemClock
from core.exceptions import InvalidReportRequestError
from indicators import IndicatorScorer
from monitoring.events import EventEmitter, FetchEvent
from providers.models import Capability, ErrorKind, ProviderResult
from reporting import CacheStatus, FetchOutcome, Report, ReportAssembler

from .chain import FallbackChain


logger = logging.getLogger(__name__)


CapabilityLike = Union[Capability, str]


class ReportAggregator:
    """
    Parallel aggregator over per-capability fallback chains.

    Usage:
        async with build_aggregator(config) as aggregator:
            report = await aggregator.build_report(
                "PEPE", [Capability.MARKET_SNAPSHOT, Capability.SOCIAL_MENTIONS]
            )
    """

    DEFAULT_DEADLINE_MS = 20_000

    def __init__(
        self,
        chains: Mapping[Capability, FallbackChain],
        scorer: Optional[IndicatorScorer] = None,
        assembler: Optional[ReportAssembler] = None,
        emitter: Optional[EventEmitter] = None,
        clock: Optional[ClockProtocol] = None,
        default_deadline_ms: float = DEFAULT_DEADLINE_MS,
        housekeeper: Optional[CacheHousekeeper] = None,
    ) -> None:
        self._chains = dict(chains)
        self._scorer = scorer or IndicatorScorer()
        self._assembler = assembler or ReportAssembler()
        self._emitter = emitter or EventEmitter()
        self._clock = clock or SystemClock()
        self._default_deadline_ms = default_deadline_ms
        self._housekeeper = housekeeper

        self._reports_built = 0

    @property
    def chains(self) -> dict[Capability, FallbackChain]:
        return dict(self._chains)

    @property
    def emitter(self) -> EventEmitter:
        return self._emitter

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    async def build_report(
        self,
        token_key: str,
        capabilities: Iterable[CapabilityLike],
        deadline_ms: Optional[float] = None,
        use_cache: bool = True,
    ) -> Report:
        """
        Build a report for a token.

        Args:
            token_key: Token address or symbol
            capabilities: Capabilities to include (duplicates are ignored)
            deadline_ms: Report deadline; defaults to the configured one
            use_cache: False bypasses cache reads

        Returns:
            Report with an outcome for every requested capability

        Raises:
            InvalidReportRequestError: blank token, empty or unknown
                capabilities, non-positive deadline
        """
        token_key = self._validate_token(token_key)
        requested = self._validate_capabilities(capabilities)
        deadline_ms = self._validate_deadline(deadline_ms)

        logger.info(
            f"Building report for {token_key}: "
            f"{[c.value for c in requested]} (deadline={deadline_ms:.0f}ms)"
        )

        start = time.monotonic()
        tasks = {
            capability: asyncio.create_task(
                self._fetch_capability(capability, token_key, deadline_ms, use_cache)
            )
            for capability in requested
        }

        done, pending = await asyncio.wait(tasks.values(), timeout=deadline_ms / 1000.0)

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        elapsed_ms = (time.monotonic() - start) * 1000.0
        outcomes: dict[Capability, FetchOutcome] = {}
        for capability, task in tasks.items():
            if task in done:
                outcomes[capability] = self._settled_outcome(capability, task, use_cache)
            else:
                logger.warning(f"Deadline reached before {capability.value} settled")
                outcomes[capability] = self._timeout_outcome(capability, elapsed_ms, use_cache)

        for capability in requested:
            self._emit(token_key, outcomes[capability])

        payloads = {
            capability: outcome.data
            for capability, outcome in outcomes.items()
            if outcome.result.is_success
        }
        indicators = self._scorer.score_all(payloads)

        report = self._assembler.assemble(
            token_key=token_key,
            requested=requested,
            outcomes=outcomes,
            indicators=indicators,
            generated_at=self._clock.now(),
        )
        self._reports_built += 1

        logger.info(
            f"Report for {token_key} built in {elapsed_ms:.0f}ms: "
            f"{len(payloads)}/{len(requested)} available, "
            f"{len(indicators)} indicators, {len(report.warnings)} warnings"
        )
        return report

    async def build_full_report(
        self,
        token_key: str,
        deadline_ms: Optional[float] = None,
        use_cache: bool = True,
    ) -> Report:
        """Build a report covering every capability."""
        return await self.build_report(token_key, list(Capability), deadline_ms, use_cache)

    async def start(self) -> None:
        """Start background cache housekeeping."""
        if self._housekeeper is not None:
            await self._housekeeper.start()

    async def close(self) -> None:
        """Stop housekeeping and release provider sessions."""
        if self._housekeeper is not None:
            await self._housekeeper.stop()

        for chain in self._chains.values():
            await chain.close()

        logger.info(f"Aggregator closed after {self._reports_built} reports")

    def get_stats(self) -> dict:
        return {
            "reports_built": self._reports_built,
            "chains": {
                capability.value: chain.provider_names
                for capability, chain in self._chains.items()
            },
            "listeners": self._emitter.listener_count,
        }

    async def __aenter__(self) -> "ReportAggregator":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    # ─────────────────────────────────────────────────────────────
    # Validation
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _validate_token(token_key: str) -> str:
        if not isinstance(token_key, str) or not token_key.strip():
            raise InvalidReportRequestError(
                "token_key must be a non-blank string",
                field="token_key",
                value=token_key,
            )
        return token_key.strip()

    @staticmethod
    def _validate_capabilities(capabilities: Iterable[CapabilityLike]) -> list[Capability]:
        if capabilities is None or isinstance(capabilities, (str, Capability)):
            raise InvalidReportRequestError(
                "capabilities must be a collection of capabilities",
                field="capabilities",
                value=capabilities,
            )

        requested: list[Capability] = []
        for item in capabilities:
            try:
                capability = Capability.parse(item)
            except ValueError as e:
                raise InvalidReportRequestError(str(e), field="capabilities", value=item, cause=e)
            if capability not in requested:
                requested.append(capability)

        if not requested:
            raise InvalidReportRequestError(
                "At least one capability must be requested",
                field="capabilities",
            )
        return requested

    def _validate_deadline(self, deadline_ms: Optional[float]) -> float:
        if deadline_ms is None:
            deadline_ms = self._default_deadline_ms
        if isinstance(deadline_ms, bool) or not isinstance(deadline_ms, (int, float)) or deadline_ms <= 0:
            raise InvalidReportRequestError(
                "deadline_ms must be a positive number",
                field="deadline_ms",
                value=deadline_ms,
            )
        return float(deadline_ms)

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    async def _fetch_capability(
        self,
        capability: Capability,
        token_key: str,
        deadline_ms: float,
        use_cache: bool,
    ) -> FetchOutcome:
        chain = self._chains.get(capability)
        if chain is None:
            logger.warning(f"No fallback chain configured for {capability.value}")
            return FetchOutcome(
                capability=capability,
                provider_name=None,
                result=ProviderResult.failure(
                    ErrorKind.UNCONFIGURED,
                    f"No providers configured for {capability.value}",
                ),
                cache_status=CacheStatus.MISS if use_cache else CacheStatus.BYPASS,
            )
        return await chain.fetch(token_key, deadline_ms, use_cache)

    @staticmethod
    def _settled_outcome(
        capability: Capability,
        task: asyncio.Task,
        use_cache: bool,
    ) -> FetchOutcome:
        error = task.exception()
        if error is None:
            return task.result()

        logger.error(
            f"Chain for {capability.value} raised unexpectedly: {error}",
            exc_info=error,
        )
        return FetchOutcome(
            capability=capability,
            provider_name=None,
            result=ProviderResult.failure(ErrorKind.UNKNOWN, f"{type(error).__name__}: {error}"),
            cache_status=CacheStatus.MISS if use_cache else CacheStatus.BYPASS,
        )

    @staticmethod
    def _timeout_outcome(capability: Capability, elapsed_ms: float, use_cache: bool) -> FetchOutcome:
        return FetchOutcome(
            capability=capability,
            provider_name=None,
            result=ProviderResult.failure(
                ErrorKind.TIMEOUT,
                f"Not settled within the report deadline ({elapsed_ms:.0f}ms)",
                deadline_truncated=True,
            ),
            cache_status=CacheStatus.MISS if use_cache else CacheStatus.BYPASS,
            elapsed_ms=elapsed_ms,
        )

    def _emit(self, token_key: str, outcome: FetchOutcome) -> None:
        self._emitter.emit(FetchEvent(
            token_key=token_key,
            capability=outcome.capability.value,
            provider=outcome.provider_name,
            cache_status=outcome.cache_status.value,
            elapsed_ms=outcome.elapsed_ms,
            outcome=outcome.result.status.value,
            error_kind=outcome.error_kind.value if outcome.error_kind else None,
            timestamp=self._clock.now(),
        ))
