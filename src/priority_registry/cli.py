"""Priority registry CLI — command-line interface for the registry.

Usage:
    python -m priority_registry.cli status
    python -m priority_registry.cli file --digest <64 hex> --summary "Solar panel" --inventor alice --block 50
    python -m priority_registry.cli lookup --digest <64 hex>
    python -m priority_registry.cli lookup-id --inventor alice --filing-id 1
    python -m priority_registry.cli count --inventor alice
    python -m priority_registry.cli filings --inventor alice
    python -m priority_registry.cli verify

Settings come from PRIORITY_REGISTRY_* environment variables or a .env
file; --data-dir and --office override them.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from dataclasses import replace
from pathlib import Path

from priority_registry.config import RegistryConfig, configure_logging
from priority_registry.engine.validator import digest_from_hex
from priority_registry.errors import InvalidDigestError
from priority_registry.service import RegistryResult, RegistryService


def _make_service(args: argparse.Namespace) -> RegistryService:
    """Create a RegistryService with durable persistence."""
    config = RegistryConfig.from_env(env_file=args.env_file)
    if args.data_dir is not None:
        config = replace(config, data_dir=args.data_dir)
    if args.office is not None:
        config = replace(config, office_identity=args.office)
    configure_logging(config.log_level)
    return RegistryService.from_config(config)


def _print_failure(result: RegistryResult) -> int:
    kind = result.error.value if result.error else "integrity"
    print(f"Failed ({kind}): {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def _parse_digest(text: str) -> bytes | None:
    try:
        return digest_from_hex(text)
    except InvalidDigestError as e:
        print(f"Failed (invalid_digest): {e}", file=sys.stderr)
        return None


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_file(args: argparse.Namespace) -> int:
    digest = _parse_digest(args.digest)
    if digest is None:
        return 1
    service = _make_service(args)
    timestamp = args.timestamp if args.timestamp is not None else int(time.time())
    result = service.file(
        digest=digest,
        summary=args.summary,
        inventor=args.inventor,
        timestamp=timestamp,
        ordering_marker=args.block,
    )
    if not result.success:
        return _print_failure(result)
    print(json.dumps(result.data["receipt"].to_dict(), indent=2))
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    digest = _parse_digest(args.digest)
    if digest is None:
        return 1
    service = _make_service(args)
    result = service.lookup(digest)
    if not result.success:
        return _print_failure(result)
    print(json.dumps(result.record.to_dict(), indent=2))
    return 0


def cmd_lookup_id(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.lookup_by_inventor_and_id(args.inventor, args.filing_id)
    if not result.success:
        return _print_failure(result)
    data = result.record.to_dict()
    data["filing_id"] = args.filing_id
    print(json.dumps(data, indent=2))
    return 0


def cmd_count(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps({
        "inventor": args.inventor,
        "count": service.inventor_filing_count(args.inventor),
    }))
    return 0


def cmd_filings(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.inventor_filings(args.inventor)
    print(json.dumps(
        [receipt.to_dict() for receipt in result.data["filings"]], indent=2,
    ))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.verify_integrity()
    if not result.success:
        return _print_failure(result)
    print(f"Registry consistent: {result.data['total']} filings")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="priority-registry",
        description="Priority registry — first-to-file invention digests",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding the filing journal (default: data/)",
    )
    parser.add_argument("--office", default=None, help="Office identity")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to .env file (default: .env)",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show registry status")

    # file
    p_file = sub.add_parser("file", help="File a digest")
    p_file.add_argument("--digest", required=True, help="32-byte digest as hex")
    p_file.add_argument("--summary", default="", help="Summary (<=256 ASCII chars)")
    p_file.add_argument("--inventor", required=True, help="Inventor identity")
    p_file.add_argument("--timestamp", type=int, help="Filing time (default: now)")
    p_file.add_argument("--block", type=int, required=True, help="Ordering marker / block height")

    # lookup
    p_lookup = sub.add_parser("lookup", help="Look up a digest")
    p_lookup.add_argument("--digest", required=True, help="32-byte digest as hex")

    # lookup-id
    p_lid = sub.add_parser("lookup-id", help="Look up an inventor's filing by id")
    p_lid.add_argument("--inventor", required=True, help="Inventor identity")
    p_lid.add_argument("--filing-id", type=int, required=True, help="Filing id (1-based)")

    # count
    p_count = sub.add_parser("count", help="Count an inventor's filings")
    p_count.add_argument("--inventor", required=True, help="Inventor identity")

    # filings
    p_filings = sub.add_parser("filings", help="List an inventor's filings in order")
    p_filings.add_argument("--inventor", required=True, help="Inventor identity")

    # verify
    sub.add_parser("verify", help="Check registry invariants")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "file": cmd_file,
        "lookup": cmd_lookup,
        "lookup-id": cmd_lookup_id,
        "count": cmd_count,
        "filings": cmd_filings,
        "verify": cmd_verify,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
