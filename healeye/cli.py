"""
HEAL-EYE — Command Line

Usage:
    python -m healeye.cli run "Expected respiratory load in Delhi during Diwali"
    python -m healeye.cli run --file request.json --output result.json
    python -m healeye.cli tools
"""

from __future__ import annotations

import argparse
import json
import sys

from healeye import __version__
from healeye.config import load_config
from healeye.logging import configure_logging
from healeye.tools import create_default_registry
from healeye.workflow import HealEyeWorkflow


def cmd_run(args) -> int:
    if args.file:
        with open(args.file) as f:
            payload = json.load(f)
    else:
        payload = {"input": args.input or ""}

    config = load_config(base_path=args.config, env=args.env)
    configure_logging(level=args.log_level or config.log_level, service_version=__version__)

    envelope = HealEyeWorkflow(config).run(payload)
    text = json.dumps(envelope, indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w") as f:
            f.write(text)
        print(f"Result saved to {args.output}", file=sys.stderr)
    else:
        print(text)
    return 0 if envelope.get("success") else 1


def cmd_tools(args) -> int:
    registry = create_default_registry()
    for name in registry.list_tools():
        spec = registry.get(name)
        params = ", ".join(spec.parameters["required"])
        print(f"  {name}({params}): {spec.description}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="HEAL-EYE — health surge analysis workflow",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="Base config YAML (default: heal_eye.yaml)")
    parser.add_argument("--env", default="", help="Config overlay profile (default: $HE_ENV)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")

    subs = parser.add_subparsers(dest="command", help="Command")

    run_p = subs.add_parser("run", help="Run the analysis workflow for one input")
    run_p.add_argument("input", nargs="?", help="Free-text question or situation")
    run_p.add_argument("--file", "-f", help="Request JSON file ({\"input\": ...})")
    run_p.add_argument("--output", "-o", help="Save result JSON")

    subs.add_parser("tools", help="List the data tools offered to the model")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    if args.command == "run":
        return cmd_run(args)
    return cmd_tools(args)


if __name__ == "__main__":
    sys.exit(main())
