#!/usr/bin/env python3
"""CLI entry point for the makegraph build orchestrator."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from makegraph.lib import registry, report
from makegraph.lib.config_loader import ConfigError, load_configs
from makegraph.lib.errors import BuildError
from makegraph.lib.io_utils import make_provider


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild stale file targets from config/rules.yaml")
    parser.add_argument("command", choices=["run", "list", "graph", "clean", "status"], help="Command to execute")
    parser.add_argument("--only", dest="only", help="Optional target to limit execution")
    parser.add_argument("--root", type=Path, default=Path("."),
                        help="Project root containing the config/ directory (default: .)")
    parser.add_argument("--output", type=Path, help="Write the status table to this .html or .csv file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def configure_logging(level_name: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    root = args.root.resolve()
    try:
        bundle = load_configs(root)
        configure_logging(bundle.globals.get("log_level", "INFO"), args.verbose)
        dag = registry.build_registry(bundle, root)

        if args.command == "list":
            for target in sorted(dag.tasks):
                print(target)
            return 0

        if args.command == "graph":
            dag.print_graph()
            return 0

        if args.command == "clean":
            for path in dag.clean_outputs():
                print(f"removed {path}")
            return 0

        if args.command == "status":
            frame = report.status_frame(dag.tasks, make_provider(dag.root))
            if args.output:
                try:
                    report.write_status(frame, args.output)
                except ValueError as exc:
                    print(f"makegraph: {exc}", file=sys.stderr)
                    return 2
                print(f"Wrote status table to {args.output.resolve()}")
            else:
                print(frame.to_string(index=False))
            return 0

        if args.command == "run":
            runner = dag.compile()
            runner.run(target=args.only)
            for target in runner.built:
                print(f"built {target}")
            if not runner.built:
                print("Nothing to do")
            return 0
    except (BuildError, ConfigError) as exc:
        print(f"makegraph: {exc}", file=sys.stderr)
        return 1

    raise ValueError(f"Unhandled command {args.command}")


if __name__ == "__main__":
    sys.exit(main())
