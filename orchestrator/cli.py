"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the token research report engine.

- Provides argparse-based CLI
- Loads configuration from YAML, environment and .env
- Builds one report and prints it as JSON

============================================================
USAGE
============================================================
python -m orchestrator.cli PEPE
python -m orchestrator.cli PEPE --capabilities market_snapshot social_mentions
python -m orchestrator.cli So11111111111111111111111111111111111111112 --demo --deadline-ms 5000

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from aggregation import ReportConfig, build_aggregator
from core.exceptions import ReportEngineError
from monitoring import FetchMetrics
from providers.models import Capability


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="token-report",
        description="Build a consolidated token research report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Capabilities:
  market_snapshot      - Price, liquidity, market cap, volume
  social_mentions      - Mention counts, sentiment, reach
  whale_activity       - Large-transaction flow estimate
  technical_signals    - RSI, momentum, support/resistance estimate
  holder_distribution  - Holder count, concentration, contract security

Examples:
  %(prog)s PEPE                                   # Full report
  %(prog)s PEPE -c market_snapshot whale_activity # Selected capabilities
  %(prog)s PEPE --demo --no-cache                 # Demo fallback, fresh fetch
        """
    )

    parser.add_argument(
        "token",
        metavar="TOKEN",
        help="Token contract address or symbol",
    )

    # --------------------------------------------------------
    # Report Options
    # --------------------------------------------------------
    report_group = parser.add_argument_group("Report Options")

    report_group.add_argument(
        "--capabilities", "-c",
        nargs="+",
        choices=[c.value for c in Capability],
        metavar="CAPABILITY",
        help="Capabilities to include (default: all)",
    )

    report_group.add_argument(
        "--deadline-ms",
        type=int,
        metavar="MS",
        help="Report deadline in milliseconds (default: from config)",
    )

    report_group.add_argument(
        "--no-cache",
        action="store_true",
        help="Bypass cache reads (fresh results are still stored)",
    )

    # --------------------------------------------------------
    # Configuration Options
    # --------------------------------------------------------
    config_group = parser.add_argument_group("Configuration Options")

    config_group.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="YAML configuration file",
    )

    config_group.add_argument(
        "--demo",
        action="store_true",
        help="Append the demo data provider to every fallback chain",
    )

    # --------------------------------------------------------
    # Output Options
    # --------------------------------------------------------
    output_group = parser.add_argument_group("Output Options")

    output_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    output_group.add_argument(
        "--metrics",
        action="store_true",
        help="Include fetch metrics in the output",
    )

    output_group.add_argument(
        "--compact",
        action="store_true",
        help="Print JSON on a single line",
    )

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> ReportConfig:
    """
    Build report configuration from CLI arguments.

    Precedence: --demo / --deadline-ms > environment > YAML > defaults.
    """
    base = ReportConfig.from_yaml(Path(args.config)) if args.config else None
    config = ReportConfig.from_env(base=base)

    if args.demo:
        config.enable_demo = True
    if args.deadline_ms is not None:
        config.deadline_ms = args.deadline_ms

    return config


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace) -> int:
    """
    Async main entry point.

    Returns:
        Exit code (0 complete report, 2 report with warnings, 1 error)
    """
    config = build_config(args)
    metrics = FetchMetrics()

    async with build_aggregator(config) as aggregator:
        aggregator.emitter.subscribe(metrics.record_event)

        capabilities = args.capabilities or [c.value for c in Capability]
        report = await aggregator.build_report(
            args.token,
            capabilities,
            deadline_ms=config.deadline_ms,
            use_cache=not args.no_cache,
        )

    output = report.to_dict()
    if args.metrics:
        output["metrics"] = metrics.get_summary()

    print(json.dumps(output, indent=None if args.compact else 2, default=str))
    return 0 if report.is_complete else 2


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return asyncio.run(async_main(args))
    except ReportEngineError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
