"""
Report Assembler - Merge outcomes and indicators into a Report.

One warning per failed capability, in the order the capabilities were
requested. EMPTY outcomes are not failures and produce no warning.
"""

import logging
from datetime import datetime
from typing import Mapping, Sequence

from indicators.models import Indicator, IndicatorName
from providers.models import Capability, ProviderResult

from .models import FetchOutcome, Report, ReportWarning


logger = logging.getLogger(__name__)


def describe_failure(result: ProviderResult) -> str:
    """Human-readable detail for a failure, including per-provider sub-errors."""
    detail = result.message or ""
    if result.sub_errors:
        parts = ", ".join(f"{s.provider}: {s.error_kind.value}" for s in result.sub_errors)
        detail = f"{detail} ({parts})" if detail else parts
    return detail


class ReportAssembler:
    """
    Builds Report objects.

    Usage:
        report = ReportAssembler().assemble(
            token_key, requested, outcomes, indicators, generated_at
        )
    """

    def assemble(
        self,
        token_key: str,
        requested: Sequence[Capability],
        outcomes: Mapping[Capability, FetchOutcome],
        indicators: Mapping[IndicatorName, Indicator],
        generated_at: datetime,
    ) -> Report:
        """
        Assemble a report.

        Args:
            token_key: Token the report is about
            requested: Capabilities in the order they were requested
            outcomes: One outcome per requested capability
            indicators: Indicators computed from the successful outcomes
            generated_at: Report timestamp

        Returns:
            Report with one warning per failed capability
        """
        missing = [c for c in requested if c not in outcomes]
        if missing:
            raise ValueError(f"No outcome for requested capabilities: {[c.value for c in missing]}")

        per_capability = {cap: outcomes[cap] for cap in requested}
        warnings = [
            ReportWarning(
                capability=cap,
                reason=outcome.result.error_kind,
                detail=describe_failure(outcome.result),
            )
            for cap, outcome in per_capability.items()
            if outcome.result.is_failure
        ]

        if warnings:
            logger.info(
                f"Report for {token_key} has {len(warnings)} warning(s): "
                f"{[w.capability.value for w in warnings]}"
            )

        return Report(
            token_key=token_key,
            generated_at=generated_at,
            per_capability=per_capability,
            indicators=dict(indicators),
            warnings=warnings,
        )
