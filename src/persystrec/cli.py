"""Maintenance commands for Persyst layout files and their canonical stores."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import yaml

from .config import load_config
from .core.reconciler import StreamReconciler
from .dataio.canonical_store import CanonicalStore, StoreError
from .dataio.lay_extractor import find_section_start, scan_comments
from .dataio.lay_writer import LayoutFileWriter, render_comments_section, render_sample_times_section

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="persystrec",
        description="Inspect and repair Persyst layout files and their SQLite stores",
    )
    parser.add_argument("--config", default=None, help="YAML config file (default: $PERSYSTREC_CONFIG)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Print the comments found in a layout file")
    scan.add_argument("layout", type=Path)

    dump = sub.add_parser("dump", help="Print the sample times and comments held in a store")
    dump.add_argument("store", type=Path)

    for name, help_text in (
        ("render", "Rewrite a layout file's SampleTimes/Comments sections from a store"),
        ("merge", "Merge comments typed into a layout file into the store, then render"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("store", type=Path)
        cmd.add_argument("layout", type=Path)
    return parser


def _cmd_scan(args: argparse.Namespace) -> int:
    comments = scan_comments(args.layout)
    sys.stdout.write(render_comments_section(comments))
    return 0


def _cmd_dump(args: argparse.Namespace) -> int:
    if not args.store.exists():
        logger.error("No store at %s", args.store)
        return 1
    with CanonicalStore.open(args.store) as store:
        sys.stdout.write(render_sample_times_section(store.all_sample_times()))
        sys.stdout.write(render_comments_section(store.all_comments()))
    return 0


def _cmd_reconcile(args: argparse.Namespace, fsync: bool) -> int:
    if not args.store.exists():
        logger.error("No store at %s", args.store)
        return 1
    try:
        section_start = find_section_start(args.layout)
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.layout, exc)
        return 1
    if section_start is None:
        logger.error("%s has no [SampleTimes] section", args.layout)
        return 1

    writer = LayoutFileWriter.attach(args.layout, section_start, fsync=fsync)
    with CanonicalStore.open(args.store) as store:
        reconciler = StreamReconciler(store, writer)
        report = reconciler.merge() if args.command == "merge" else reconciler.render()
    if report.merged:
        logger.info("Merged %d comment(s)", report.merged)
    return 0 if report.ok else 1


def main(argv: Sequence[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
        logger.error("Invalid config: %s", exc)
        raise SystemExit(2)

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "scan":
            code = _cmd_scan(args)
        elif args.command == "dump":
            code = _cmd_dump(args)
        else:
            code = _cmd_reconcile(args, fsync=config.fsync_each_tick)
    except StoreError as exc:
        logger.error("%s", exc)
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()
