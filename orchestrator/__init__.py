"""
Orchestrator Package - Command-line entry point.

============================================================
PACKAGE OVERVIEW
============================================================
Wires configuration (YAML, environment, .env) into a report
aggregator, builds one report and prints it as JSON.

    python -m orchestrator.cli PEPE --demo

============================================================
"""

from .cli import build_config, create_parser, main


__all__ = [
    "build_config",
    "create_parser",
    "main",
]
