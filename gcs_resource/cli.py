"""Command line interface for the gcs resource (check / in / out)."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import IO, Dict, Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .cli_progress import PublishProgressDisplay, console, render_configuration_summary
from .errors import RequestError, ResourceError
from .models import InRequest, OutRequest, ResourceConfig
from .orchestrator import PublishOrchestrator
from .protocol_io import read_optional_request, read_request, write_response
from .version import resolve_in_version

logger = logging.getLogger(__name__)

COMMANDS = ("check", "in", "out")


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging on stderr.

    Default level is INFO (or LOG_LEVEL from the environment); the
    orchestrator shows stderr to pipeline users. Returns the effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent:
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL")
        level = getattr(logging, (env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # google-auth and urllib3 are chatty at DEBUG
    for noisy in ("google.auth", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))
    return logging.getLevelName(level)


def _parse_env_line(line: str, path: Path, lineno: int):
    """Split ``[export ]KEY=VALUE`` into a pair; quotes around VALUE are dropped."""
    if line.startswith("export "):
        line = line[len("export "):].lstrip()
    key, sep, value = line.partition("=")
    key, value = key.strip(), value.strip()
    if not sep or not key:
        raise ResourceError(f"{path}:{lineno}: expected KEY=VALUE, got {line!r}")
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return key, value


def _load_env_file(path: Path, override: bool = False) -> Dict[str, str]:
    """
    Apply operator settings (GCS_RESOURCE_*, LOG_LEVEL, GOOGLE_*) from a .env file.

    Existing environment wins unless ``override`` is set. Returns the
    settings that were applied.
    """
    if not path.is_file():
        raise ResourceError(f"env file not found or not a file: {path}")
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise ResourceError(f"could not read env file {path}: {exc}") from exc

    applied = {}
    for lineno, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, value = _parse_env_line(line, path, lineno)
        if override or key not in os.environ:
            os.environ[key] = value
            applied[key] = value
    return applied


def _resolve_command(explicit: Optional[str], prog: str) -> str:
    cmd = explicit or prog
    if cmd not in COMMANDS:
        raise RequestError(f"unexpected command {cmd}; must be check, in, out")
    return cmd


def _run_check(stdout: IO[str]) -> int:
    # No versions are ever discovered; stdin is not consumed.
    write_response(stdout, [])
    return 0


def _run_in(args: Sequence[str], stdin: IO[str], stdout: IO[str]) -> int:
    if len(args) != 1:
        raise RequestError("usage: in <destination>")

    request = read_optional_request(stdin, InRequest.from_dict)
    version = resolve_in_version(request.version if request else None)
    logger.debug(f"in: destination {args[0]}, version {version.to_dict()}")
    write_response(stdout, {"version": version.to_dict()})
    return 0


def _run_out(
    args: Sequence[str],
    stdin: IO[str],
    stdout: IO[str],
    show_progress: bool,
    clock=None,
    storage_factory=None,
) -> int:
    if len(args) != 1:
        raise RequestError("usage: out <source>")
    source_root = Path(args[0])

    request = read_request(stdin, OutRequest.from_dict)
    logger.debug(f"Request {json.dumps(request.redacted())}")

    config = ResourceConfig.from_env()
    orchestrator = PublishOrchestrator(
        config=config,
        storage_factory=storage_factory,
        clock=clock,
    )

    display = None
    if show_progress:
        render_configuration_summary(
            {
                "Source": str(source_root / request.params.source),
                "Bucket": request.params.bucket,
                "Prefix": request.params.prefix or "(none)",
                "Credentials": "inline" if request.source.has_credentials else "default",
                "Endpoint": request.source.api_endpoint or "(default)",
                "Timeout": f"{config.upload_timeout:g}s per file",
            }
        )
        display = PublishProgressDisplay()
        orchestrator.on_scan_complete(display.on_scan_complete)
        orchestrator.on_file_start(display.on_file_start)
        orchestrator.on_file_complete(display.on_file_complete)
        orchestrator.on_file_fail(display.on_file_fail)

    response = asyncio.run(orchestrator.publish(request, source_root))
    if display is not None:
        display.on_finish()

    write_response(stdout, response.to_dict())
    return 0


def _build_parser(prog: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Pipeline resource publishing a directory tree to Google Cloud Storage.",
    )
    parser.add_argument(
        "--cmd",
        choices=COMMANDS,
        default=None,
        help="Command to run (default: name of the invoked program)",
    )
    parser.add_argument("args", nargs="*", help="in <destination> | out <source>")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gcs-resource {__version__}",
    )
    return parser


def run_cli(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[IO[str]] = None,
    stdout: Optional[IO[str]] = None,
    prog: Optional[str] = None,
    clock=None,
    storage_factory=None,
) -> int:
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    prog = prog or Path(sys.argv[0]).name

    parser = _build_parser(prog)
    args = parser.parse_args(argv)

    try:
        if args.env_file is not None:
            _load_env_file(Path(args.env_file))

        _setup_logging(debug=args.debug, silent=args.silent, log_level=args.log_level)

        cmd = _resolve_command(args.cmd, prog)
        if cmd == "check":
            return _run_check(stdout)
        if cmd == "in":
            return _run_in(args.args, stdin, stdout)
        return _run_out(
            args.args,
            stdin,
            stdout,
            show_progress=not args.silent,
            clock=clock,
            storage_factory=storage_factory,
        )
    except ResourceError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
