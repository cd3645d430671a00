#!/usr/bin/env python3
"""
cli.py
Command-line entrypoint: compute a device fingerprint, run a session rotation,
or verify a serialized rotation proof.

Exit codes: 0 ok, 1 failure, 2 invalid input.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import pipeline
from config import DEFAULT_CONFIG, load_config
from errors import InvalidFormat
from fingerprint import fingerprint_decimal
from identifiers import RawIdentifiers, canonicalize
from ledger import GraphQLLedger
from orchestrator import RotationOrchestrator, RotationStatus, SessionContext
from submission import HttpSubmissionTransport
from utils import read_json, setup_basic_logger, write_json_atomic

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Device-locked session rotation proofs."
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        "-c",
        default=None,
        help="Optional JSON config file to override defaults.",
    )
    common.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    fp = sub.add_parser("fingerprint", parents=[common], help="Print the device fingerprint.")
    fp.add_argument("--identifiers", "-i", required=True, help="JSON file with raw identifiers (hardware query output).")

    rot = sub.add_parser("rotate", parents=[common], help="Rotate the session key for a game.")
    rot.add_argument("--identifiers", "-i", required=True, help="JSON file with raw identifiers (hardware query output).")
    rot.add_argument("--game-id", type=int, required=True, help="Licensed product id.")
    rot.add_argument("--new-session-key", type=int, default=None, help="Force the new session key.")
    rot.add_argument("--out", "-o", default=None, help="Write the serialized proof to this file.")
    rot.add_argument("--no-submit", action="store_true", help="Do not submit the proof to the server.")

    ver = sub.add_parser("verify", parents=[common], help="Verify a serialized rotation proof.")
    ver.add_argument("--proof", "-p", required=True, help="JSON file produced by 'rotate --out'.")
    return p


def _load_identifiers(path: str) -> RawIdentifiers:
    data = read_json(path)
    if data is None:
        raise FileNotFoundError(f"identifiers file not found: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"identifiers file must hold a JSON object: {path}")
    return RawIdentifiers.from_dict(data)


def cmd_fingerprint(args, cfg) -> int:
    canonical = canonicalize(_load_identifiers(args.identifiers))
    print(fingerprint_decimal(canonical))
    return 0


def cmd_rotate(args, cfg) -> int:
    session = SessionContext(
        raw=_load_identifiers(args.identifiers),
        on_device_identified=lambda fp: logger.info("device fingerprint: %s", fp),
    )
    transport = None if args.no_submit else HttpSubmissionTransport.from_config(cfg)
    orch = RotationOrchestrator(GraphQLLedger.from_config(cfg), transport, cfg)
    try:
        result = asyncio.run(orch.run_rotation(session, args.game_id, args.new_session_key))
    finally:
        orch.close()

    print(result.status.value)
    if result.status is not RotationStatus.SUCCESS:
        if result.error:
            print(result.error, file=sys.stderr)
        return 2 if result.status is RotationStatus.INVALID_DEVICE else 1
    if args.out:
        write_json_atomic(args.out, result.outcome.proof.to_dict())
        logger.info("wrote proof to %s", args.out)
    return 0


def cmd_verify(args, cfg) -> int:
    proof_path = Path(args.proof)
    if not proof_path.exists():
        print(f"ERROR: proof file not found: {proof_path}", file=sys.stderr)
        return 2
    ctx = pipeline.setup(cfg["proof_repetitions"])
    ok = pipeline.verify_serialized(ctx, proof_path.read_bytes())
    print("valid" if ok else "invalid")
    return 0 if ok else 1


COMMANDS = {
    "fingerprint": cmd_fingerprint,
    "rotate": cmd_rotate,
    "verify": cmd_verify,
}


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    cfg = DEFAULT_CONFIG
    if args.config:
        cfg = load_config(args.config, base=cfg)
    setup_basic_logger(level="WARNING" if args.quiet else cfg.get("log_level", "INFO"))

    try:
        code = COMMANDS[args.command](args, cfg)
    except InvalidFormat as exc:
        print(f"ERROR: invalid identifier {exc}", file=sys.stderr)
        code = 2
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
