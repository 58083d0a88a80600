"""Command line entry point for computing and comparing perceptual hashes."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

import numpy as np

from .config import RESAMPLE_FILTERS, EngineSettings, HashConfig, Method
from .distance import hamming_distance
from .errors import ConfigError, HashInputError, SourceUnavailableError
from .hasher import Hasher

logger = logging.getLogger(__name__)


def _settings_from_args(args: argparse.Namespace) -> EngineSettings:
    env = EngineSettings.from_env()
    config = HashConfig.create(
        geometry=args.geometry if args.geometry is not None else env.default_config.geometry,
        method=args.method if args.method is not None else env.default_config.method,
        reduce=args.reduce or env.default_config.reduce,
        mirror=args.mirror,
        mirrorproof=args.mirrorproof,
    )
    return EngineSettings(
        size=args.size if args.size is not None else env.size,
        resample=args.resample if args.resample is not None else env.resample,
        backends=tuple(args.backend) if args.backend else env.backends,
        default_config=config,
    )


def run_hash(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    logger.info("hashing %d file(s) with %s", len(args.files), settings.default_config.describe())
    status = 0
    for path in args.files:
        try:
            result = Hasher(Path(path), settings).compute()
        except SourceUnavailableError as exc:
            print(f"{path}: {exc}", file=sys.stderr)
            status = 1
            continue
        print(f"{result.hex}  {path}")
    return status


def run_diff(args: argparse.Namespace) -> int:
    try:
        print(hamming_distance(args.hash_a, args.hash_b))
    except HashInputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


def run_compare(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    try:
        a = Hasher(Path(args.file_a), settings).compute()
        b = Hasher(Path(args.file_b), settings).compute()
    except SourceUnavailableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(f"{a.hex}  {args.file_a}")
    print(f"{b.hex}  {args.file_b}")
    print(f"distance: {a - b}/{len(a)}")
    return 0


def run_dump(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    try:
        coeffs = Hasher(Path(args.file), settings).coefficient_matrix()
    except SourceUnavailableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    rows = max(1, min(args.rows, coeffs.shape[0]))
    block = coeffs[:rows, :rows]
    with np.printoptions(precision=2, suppress=True, linewidth=160):
        print(block)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phashkit", description="DCT perceptual hashing.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument("--geometry", type=str, default=None, help="'NxN' square block or a coefficient count.")
        subparser.add_argument("--method", choices=[m.value for m in Method], default=None)
        subparser.add_argument("--reduce", action="store_true", help="Keep the upper-left triangle, drop DC.")
        mirror = subparser.add_mutually_exclusive_group()
        mirror.add_argument("--mirror", action="store_true", help="Hash the horizontally mirrored image.")
        mirror.add_argument("--mirrorproof", action="store_true", help="Hash coefficient magnitudes only.")
        subparser.add_argument("--size", type=int, default=None, help="Luminance grid size R (default 32).")
        subparser.add_argument("--resample", choices=RESAMPLE_FILTERS, default=None)
        subparser.add_argument(
            "--backend",
            action="append",
            default=None,
            help="Image backend to try, in order (repeatable). Default: pillow, opencv.",
        )

    hash_cmd = sub.add_parser("hash", help="Print the hash of each file.")
    add_common(hash_cmd)
    hash_cmd.add_argument("files", nargs="+")
    hash_cmd.set_defaults(func=run_hash)

    diff_cmd = sub.add_parser("diff", help="Hamming distance between two hex hashes.")
    diff_cmd.add_argument("hash_a")
    diff_cmd.add_argument("hash_b")
    diff_cmd.set_defaults(func=run_diff)

    compare_cmd = sub.add_parser("compare", help="Hash two files and print their distance.")
    add_common(compare_cmd)
    compare_cmd.add_argument("file_a")
    compare_cmd.add_argument("file_b")
    compare_cmd.set_defaults(func=run_compare)

    dump_cmd = sub.add_parser("dump", help="Print the top-left block of the DCT coefficient matrix.")
    add_common(dump_cmd)
    dump_cmd.add_argument("file")
    dump_cmd.add_argument("--rows", type=int, default=8)
    dump_cmd.set_defaults(func=run_dump)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
