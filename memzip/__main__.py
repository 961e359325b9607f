import argparse
import logging
import os
import sys
from typing import List, Optional

from .consts import METHOD_NAMES
from .errors import MemZipError
from .reader import ZipArchive
from .writer import build

logger = logging.getLogger("memzip")


def _read_file(path: str) -> bytes:
    with open(path, "rb") as fh:
        return fh.read()


def cmd_list(args: argparse.Namespace) -> int:
    with ZipArchive(_read_file(args.archive)) as archive:
        for entry in archive:
            method = METHOD_NAMES.get(entry.method, f"method {entry.method}")
            print(f"  {entry.filename}  ({entry.size} bytes, {method})")
        print(f"{len(archive)} entries")
    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    with ZipArchive(_read_file(args.archive)) as archive:
        entry = archive.find(args.name)
        if entry is None:
            print(f"File not found: {args.name}", file=sys.stderr)
            return 1
        out = bytearray(entry.size)
        written = entry.extract(out)
    if args.output:
        with open(args.output, "wb") as fh:
            fh.write(out)
        print(f"Extracted {written} bytes to {args.output}")
    else:
        sys.stdout.buffer.write(out)
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    names = [os.path.basename(path) for path in args.files]
    payloads = [_read_file(path) for path in args.files]
    data = build(names, payloads)
    with open(args.archive, "wb") as fh:
        fh.write(data)
    print(f"Created {args.archive} ({len(data)} bytes)")
    return 0


def cmd_test(args: argparse.Namespace) -> int:
    with ZipArchive(_read_file(args.archive)) as archive:
        bad = archive.test()
    if bad is not None:
        print(f"CRC mismatch: {bad}", file=sys.stderr)
        return 1
    print("No errors detected")
    return 0


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="memzip", description="List, extract and create zip archives.")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="list entries")
    p.add_argument("archive")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("extract", help="extract one entry")
    p.add_argument("archive")
    p.add_argument("name")
    p.add_argument("-o", "--output", help="write to this file instead of stdout")
    p.set_defaults(func=cmd_extract)

    p = sub.add_parser("create", help="create a store-only archive")
    p.add_argument("archive")
    p.add_argument("files", nargs="+")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("test", help="check CRC-32 of every entry")
    p.add_argument("archive")
    p.set_defaults(func=cmd_test)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = make_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except MemZipError as e:
        logger.error("%s: %s (%s)", args.archive, e, e.status.value)
        return 1
    except OSError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
