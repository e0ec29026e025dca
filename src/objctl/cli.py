#!/usr/bin/env python3
"""
objctl command line.

  objctl run                  watch the project and rebuild/diff on change
  objctl build [--obj PATH]   build and diff once, exit with the outcome
  objctl config show|set      inspect or edit the persisted config
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from .collaborators import load_callable
from .config import AppConfig, DiffKind, SharedConfig, load_config, save_config
from .controller import Controller
from .errors import ConfigError
from .jobs.models import JobOutcome
from .jobs.registry import Job
from .paths import get_default_config_path

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_ERROR = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="objctl",
        description="Background build-and-compare job control",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="Config file (default: $OBJCTL_CONFIG or ./objctl.yaml)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default="info",
        help="Logging level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Watch and rebuild until interrupted")
    run_p.add_argument("--tick-interval", type=float, default=0.1, help="Tick interval in seconds")
    _add_collaborator_args(run_p)

    build_p = sub.add_parser("build", help="Build and diff once")
    build_p.add_argument("--obj", default=None, help="Target object path (overrides build_obj)")
    _add_collaborator_args(build_p)

    config_p = sub.add_parser("config", help="Show or edit the config")
    config_sub = config_p.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("show", help="Print the config")
    set_p = config_sub.add_parser("set", help="Set one config key")
    set_p.add_argument("key")
    set_p.add_argument("value", help="YAML scalar; 'null' clears the key")

    return parser.parse_args(argv)


def _add_collaborator_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--parser", default=None, help="Object parser as module:attr (overrides config)")
    p.add_argument("--diff-engine", default=None, help="Diff engine as module:attr (overrides config)")


def resolve_collaborators(args: argparse.Namespace, config: AppConfig) -> Tuple[object, object]:
    """
    Raises:
        ConfigError: If a collaborator is not configured or cannot be imported
    """
    parser_spec = args.parser or config.parser
    diff_spec = args.diff_engine or config.diff_engine
    if not parser_spec:
        raise ConfigError("No object parser configured (set 'parser' or pass --parser)")
    if not diff_spec:
        raise ConfigError("No diff engine configured (set 'diff_engine' or pass --diff-engine)")
    return load_callable(parser_spec), load_callable(diff_spec)


def wait_for(controller: Controller, job: Job, poll_s: float = 0.05) -> JobOutcome:
    """Tick until `job` is reaped; returns its outcome."""
    while True:
        for finished, outcome in controller.handle_finished():
            if finished is job:
                return outcome
        time.sleep(poll_s)


def cmd_run(args: argparse.Namespace, config_path: Path) -> int:
    config = load_config(config_path)
    parser, diff_engine = resolve_collaborators(args, config)
    controller = Controller(SharedConfig(config), parser, diff_engine, config_path=config_path)
    controller.run_forever(args.tick_interval)
    return EXIT_OK


def cmd_build(args: argparse.Namespace, config_path: Path) -> int:
    config = load_config(config_path)
    if args.obj:
        config.build_obj = args.obj
    parser, diff_engine = resolve_collaborators(args, config)
    controller = Controller(SharedConfig(config), parser, diff_engine)

    if config.diff_kind == DiffKind.WHOLE_BINARY:
        job: Optional[Job] = controller.request_bin_diff()
    else:
        job = controller.request_build()
    if job is None:
        return EXIT_ERROR

    try:
        outcome = wait_for(controller, job)
    except KeyboardInterrupt:
        controller.cancel(job.job_id)
        return EXIT_ERROR
    finally:
        controller.shutdown()

    if outcome.error is not None:
        logger.error("%s", job.status.read().error)
        return EXIT_ERROR
    build = controller.build
    if build is None:
        return EXIT_ERROR
    if build.first_status.success and build.second_status.success:
        return EXIT_OK
    return EXIT_BUILD_FAILED


def cmd_config(args: argparse.Namespace, config_path: Path) -> int:
    config = load_config(config_path)
    if args.config_command == "show":
        print(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False), end="")
        return EXIT_OK

    shared = SharedConfig(config)
    shared.update(**{args.key: yaml.safe_load(args.value)})
    save_config(shared.snapshot(), config_path)
    logger.info("Set %s in %s", args.key, config_path)
    return EXIT_OK


COMMANDS = {
    "run": cmd_run,
    "build": cmd_build,
    "config": cmd_config,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main entrypoint."""
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = args.config or get_default_config_path()
    try:
        code = COMMANDS[args.command](args, config_path)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        code = EXIT_ERROR
    sys.exit(code)


if __name__ == "__main__":
    main()
