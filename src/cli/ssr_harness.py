# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""CLI harness running SSR injection over a directory of built HTML."""

import argparse
import asyncio
import json
import logging
import re
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TextIO

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ssrinject import BuildRunState, SSRConfig, SSRInjector, compute_dependents
from ssrinject.model import DEFAULT_SEARCH_ROOT, DEFAULT_TAG_PATTERN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetSummary:
    """Represent the outcome for one HTML asset."""

    asset: str
    placeholders: int
    rewritten: bool


class ValidationError(RuntimeError):
    """Represent user input validation failure."""


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="ssr-inject")
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render")
    render_parser.add_argument(
        "--dist", required=True, help="Directory holding built HTML assets."
    )
    render_parser.add_argument(
        "--base-dir",
        default=".",
        help="Directory placeholder paths are resolved from.",
    )
    render_parser.add_argument(
        "--search-root",
        default=str(DEFAULT_SEARCH_ROOT),
        help="Root of the source module graph.",
    )
    render_parser.add_argument(
        "--changed",
        required=False,
        help="Changed source file; omit for an initial run that builds everything.",
    )
    render_parser.add_argument(
        "--pattern",
        default=DEFAULT_TAG_PATTERN.pattern,
        help="Regular expression matching one placeholder tag.",
    )
    render_parser.add_argument(
        "--data-props",
        action="store_true",
        help="Emit serialized arguments as data-props on wrappers.",
    )
    render_parser.add_argument(
        "--env-file", default=".env", help="Env file passed to args factories."
    )
    render_parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format.",
    )
    render_parser.add_argument(
        "--verbose", action="store_true", help="Log placeholder attributes and arguments."
    )

    dependents_parser = subparsers.add_parser("dependents")
    dependents_parser.add_argument(
        "--search-root",
        default=str(DEFAULT_SEARCH_ROOT),
        help="Root of the source module graph.",
    )
    dependents_parser.add_argument(
        "--changed", required=True, help="Changed source file."
    )
    dependents_parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format.",
    )
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    if args.command == "render":
        return _run_render(args=args, stdout=stdout, stderr=stderr)
    if args.command == "dependents":
        return _run_dependents(args=args, stdout=stdout, stderr=stderr)

    logger.warning(f"Unsupported command (command={args.command})")
    stderr.write(f"Unsupported command: {args.command}\n")
    return 2


def _run_render(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    """Run render command.

    Args:
        args: Parsed CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    try:
        config = _build_config(args)
        dist_path = _validate_directory(Path(args.dist), label="Dist path")
    except ValidationError as exc:
        logger.warning(f"Validation failed (error={exc})")
        stderr.write(f"{exc}\n")
        return 2

    if args.verbose:
        logging.getLogger("ssrinject").setLevel(logging.DEBUG)
    env_path = config.base_dir / config.env_file
    if env_path.is_file():
        load_dotenv(env_path, override=False)
        logger.info(f"Loaded env file (path={env_path})")

    try:
        assets = _read_assets(dist_path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(f"Failed reading HTML assets (dist={dist_path} error={exc})")
        stderr.write(f"Failed reading HTML assets: {exc}\n")
        return 2
    originals = dict(assets)

    injector = SSRInjector(config=config)
    changed = Path(args.changed) if args.changed else None
    state = BuildRunState(is_initial_run=changed is None)
    state = injector.start_cycle(state, changed)
    counts = asyncio.run(injector.process_assets(assets, state))
    injector.finish_cycle(state)

    summaries: list[AssetSummary] = []
    for asset_name in sorted(counts):
        rewritten = assets[asset_name] != originals[asset_name]
        if rewritten:
            try:
                (dist_path / asset_name).write_text(assets[asset_name], encoding="utf-8")
            except OSError as exc:
                logger.warning(f"Failed writing asset (asset={asset_name} error={exc})")
                stderr.write(f"Failed writing asset: {asset_name}\n")
                return 2
        summaries.append(
            AssetSummary(
                asset=asset_name,
                placeholders=counts[asset_name],
                rewritten=rewritten,
            )
        )

    logger.info(
        f"Render completed (dist={dist_path} assets={len(summaries)} "
        f"placeholders={sum(s.placeholders for s in summaries)})"
    )
    if args.format == "json":
        _write_json(
            payload={"assets": [asdict(s) for s in summaries]}, stdout=stdout
        )
    else:
        _write_asset_table(summaries=summaries, stdout=stdout)
    return 0


def _run_dependents(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    """Run dependents command.

    Args:
        args: Parsed CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    try:
        search_root = _validate_directory(Path(args.search_root), label="Search root")
    except ValidationError as exc:
        logger.warning(f"Validation failed (error={exc})")
        stderr.write(f"{exc}\n")
        return 2

    try:
        dependents = sorted(compute_dependents(search_root, Path(args.changed)))
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(f"Failed building module graph (root={search_root} error={exc})")
        stderr.write(f"Failed building module graph: {exc}\n")
        return 2

    if args.format == "json":
        _write_json(payload={"dependents": dependents}, stdout=stdout)
    else:
        console = Console(file=stdout, force_terminal=False, color_system="truecolor")
        table = Table(show_header=True, expand=True)
        table.add_column("module", overflow="fold")
        for module in dependents:
            table.add_row(module)
        console.print(table)
    return 0


def _build_config(args: argparse.Namespace) -> SSRConfig:
    """Build injector configuration from parsed arguments.

    Raises:
        ValidationError: If the pattern does not compile.
    """
    try:
        pattern = re.compile(args.pattern)
    except re.error as exc:
        raise ValidationError(f"Invalid placeholder pattern: {exc}") from exc
    return SSRConfig(
        tag_pattern=pattern,
        create_data_props=args.data_props,
        env_file=args.env_file,
        search_root=Path(args.search_root),
        base_dir=Path(args.base_dir).resolve(),
    )


def _validate_directory(path: Path, label: str) -> Path:
    resolved = path.resolve()
    if not resolved.exists():
        raise ValidationError(f"{label} does not exist: {resolved}")
    if not resolved.is_dir():
        raise ValidationError(f"{label} must be a directory: {resolved}")
    return resolved


def _read_assets(dist_path: Path) -> dict[str, str]:
    """Read every HTML file beneath ``dist_path`` keyed by relative posix name.

    Raises:
        OSError: If a file cannot be read.
        UnicodeDecodeError: If a file is not valid UTF-8.
    """
    return {
        path.relative_to(dist_path).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(dist_path.rglob("*.html"))
        if path.is_file()
    }


def _write_json(payload: dict[str, object], stdout: TextIO) -> None:
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(
        json.dumps(payload, indent=2, sort_keys=True),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _write_asset_table(summaries: list[AssetSummary], stdout: TextIO) -> None:
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    table = Table(show_header=True, show_lines=True, expand=True)
    table.add_column("asset", ratio=4, overflow="fold")
    table.add_column("placeholders", ratio=1, justify="right")
    table.add_column("rewritten", ratio=1)
    for summary in summaries:
        table.add_row(summary.asset, str(summary.placeholders), str(summary.rewritten))
    console.print(table)


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
