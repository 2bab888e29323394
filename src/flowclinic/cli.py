#!/usr/bin/env python3
"""
flowclinic CLI entrypoint

  flowclinic My_Flow.flow-meta.xml      validate one flow
  flowclinic --init                     write flowclinic.yaml
  flowclinic --show-config              print the effective configuration

Exit status: 0 when the flow passes, otherwise the configured code of the
first failing check (unconnected elements, then effectful elements in loops).
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config_loader import load_config
from .errors import BrokenReferenceError, ConfigError, FlowParseError, UsageError
from .reachability import REACHABILITY_MODES

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowclinic",
        description="Validate flow metadata: unconnected elements and effectful operations inside loops",
    )
    parser.add_argument("flow", nargs="?", help="Path to a *.flow-meta.xml file")
    parser.add_argument("--config", default=None, help="Config file (YAML or pyproject.toml)")
    parser.add_argument("--mode", choices=REACHABILITY_MODES, default=None, help="Override reachability_mode")
    parser.add_argument("--output", default=None, help="Write summary.json (and graph) to this directory")
    parser.add_argument("--graph", action="store_true", help="Render the flow graph with findings highlighted")
    parser.add_argument("--format", default=None, help="Graph image format (default from config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--init", action="store_true", help="Generate flowclinic.yaml")
    parser.add_argument("--force", action="store_true", help="Overwrite existing flowclinic.yaml with --init")
    parser.add_argument("--show-config", action="store_true", help="Show the effective configuration")
    return parser


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    config_path = Path(args.config) if args.config else None

    # Lazy import to keep plain validation free of the scaffolding helpers
    if args.init:
        from .config_init import init_config

        try:
            init_config(config_path, force=args.force)
        except FileExistsError as e:
            print(f"❌ {e}", file=sys.stderr)
            return 1
        return 0

    try:
        config = load_config(config_path)
    except (ConfigError, FileNotFoundError, ValueError) as e:
        print(f"❌ Config load failed: {e}", file=sys.stderr)
        return 2

    _setup_logging("DEBUG" if args.verbose else config.log_level)

    if args.show_config:
        from .config_init import show_config

        show_config(config_path)
        return 0

    if args.mode:
        config.reachability_mode = args.mode
    if args.format:
        config.format = args.format

    from .validator import run_validation

    try:
        exit_code, _report = run_validation(
            args.flow, config, output_dir=args.output, render_graph=args.graph
        )
    except UsageError as e:
        print(str(e), file=sys.stderr)
        return config.exit_codes.usage_error
    except BrokenReferenceError as e:
        print(f"❌ Broken reference: {e}", file=sys.stderr)
        return config.exit_codes.broken_reference
    except FlowParseError as e:
        logger.error("Could not parse flow: %s", e)
        raise
    return exit_code


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()
