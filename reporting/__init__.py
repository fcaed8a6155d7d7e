"""
Reporting Package.

Turns per-capability outcomes and indicators into the caller-owned Report.

Modules:
- models: FetchOutcome, Report, ReportWarning
- assembler: ReportAssembler
"""

from .assembler import ReportAssembler, describe_failure
from .models import Availability, CacheStatus, FetchOutcome, Report, ReportWarning


__all__ = [
    "Availability",
    "CacheStatus",
    "FetchOutcome",
    "Report",
    "ReportAssembler",
    "ReportWarning",
    "describe_failure",
]
