import asyncio
import argparse
import logging
import sys

from core.api import build_engine, load_marker_rules
from core.config import load_config
from core.context import DetectionContext, process_environment
from core.errors import ConfigError, DetectionCancelled
from core.probe_registry import ProbeRegistry
from core.version import version_string
from models.classification import ClassificationRecord


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="criprof", description="Container runtime profiling and introspection")
    parser.add_argument("--config", type=str, help="Config file (default is $HOME/.criprof.yaml)")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    hints = subparsers.add_parser("hints", help="Display container runtime information")
    hints.add_argument("--timeout", type=float, help="Give up after this many seconds and print the fallback record")
    hints.add_argument("--fast", action="store_true", help="Skip network probes")
    hints.add_argument("--parallel", action="store_true", help="Run probes concurrently")
    hints.add_argument("--exclude", type=str, nargs="+", help="Exclude specific probes (e.g., --exclude swarm-port-probe)")
    hints.add_argument("--indent", type=int, help="Pretty-print JSON with this indent")

    subparsers.add_parser("version", help="Print version information")
    subparsers.add_parser("probes", help="List all available probes and exit")
    return parser


def _list_probes() -> None:
    print("Available probes:")
    print("\nPassive Probes (files, environment, build target):")
    for name in ProbeRegistry.get_probes_by_type("passive"):
        print(f"  - {name} (priority {ProbeRegistry.get_probe_class(name).priority})")
    print("\nNetwork Probes (open connections):")
    for name in ProbeRegistry.get_probes_by_type("network"):
        print(f"  - {name} (priority {ProbeRegistry.get_probe_class(name).priority})")


def _hints(args, logger: logging.Logger) -> int:
    try:
        config = load_config(args.config, env=process_environment())
        rules = load_marker_rules(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.fast:
        config.fast = True
    if args.parallel:
        config.parallel = True
    if args.timeout is not None:
        config.deadline_seconds = args.timeout
    if args.exclude:
        config.exclude = sorted(set(config.exclude) | set(args.exclude))

    available = set(ProbeRegistry.get_all_names()) | {rule.name for rule in rules}
    invalid_excludes = set(config.exclude) - available
    if invalid_excludes:
        logger.error(f"Invalid probe names: {', '.join(sorted(invalid_excludes))}")
        logger.info(f"Available probes: {', '.join(sorted(available))}")
        return 1

    if config.exclude:
        logger.info(f"Excluding probes: {', '.join(config.exclude)}")

    async def run() -> ClassificationRecord:
        engine = build_engine(config, rules=rules)
        try:
            return await engine.detect_all(DetectionContext(timeout=config.deadline_seconds))
        except DetectionCancelled as e:
            logger.warning(f"Detection did not complete: {e}")
            return ClassificationRecord.fallback()

    record = asyncio.run(run())
    print(record.to_json(indent=args.indent))
    return 0


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)

    # Configure logging; stdout is reserved for the record
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, args.log_level),
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    if args.command == "version":
        print(f"criprof version {version_string()}")
        return 0
    if args.command == "probes":
        _list_probes()
        return 0
    return _hints(args, logger)


if __name__ == "__main__":
    sys.exit(main())
