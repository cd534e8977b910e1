#!/usr/bin/env python3
"""
cli.py — Command line for fedsign

Commands:
  canonicalize  Write the canonical form of a JSON document
  sign          Sign a JSON document with a key from a keyfile
  verify        Check one entity's signature on a JSON document

Documents are read from a path, or from stdin when the path is '-' or
omitted.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

from .canonical_json import canonical_json
from .errors import FedSignError
from .signing import sign_json, verify_json
from .unpadded_base64 import decode_base64

logger = logging.getLogger(__name__)


def _fail_with_error(err: FedSignError) -> None:
    """Print a structured error message from a ``FedSignError`` and exit.

    Args:
        err: Error raised while canonicalizing, signing or verifying.

    Returns:
        None: This function terminates the process.
    """
    context = f" Context: {err.context}." if err.context else ""
    print(f"ERROR: {err.code}. {err.message}{context}", file=sys.stderr)
    sys.exit(1)


def _cli_error(what: str, why: str, fix: str) -> None:
    """Print a CLI usage error and exit.

    Args:
        what: What failed.
        why: Why it failed.
        fix: Recommended remediation.

    Returns:
        None: This function terminates the process.
    """
    print(f"ERROR: {what}. {why}. Fix: {fix}.", file=sys.stderr)
    sys.exit(1)


def _read_input(path: Optional[str]) -> bytes:
    if path is None or path == "-":
        return sys.stdin.buffer.read()
    source = Path(path)
    if not source.is_file():
        _cli_error(
            f"Input file not found: {source}",
            "the document to process must be a readable JSON file",
            "pass an existing file path, or '-' to read from stdin",
        )
    return source.read_bytes()


def _write_output(data: bytes, out: Optional[str]) -> None:
    if out:
        Path(out).write_bytes(data)
        logger.info("wrote %d bytes to %s", len(data), out)
    else:
        sys.stdout.buffer.write(data + b"\n")
        sys.stdout.flush()


def _decode_key(value: str, what: str) -> bytes:
    """Decode base64 key material; padding is tolerated for keys."""
    try:
        return decode_base64(value.rstrip("="), canonical=False)
    except ValueError as exc:
        _cli_error(
            f"Invalid {what}",
            f"key material must be base64 ({exc})",
            "check that the key was copied completely",
        )


def _load_keys(keys_path: Path) -> Dict[str, str]:
    """Load keyfile data into ``{key_id: private_key_b64}`` mapping.

    Args:
        keys_path: Path to a keyfile, either ``{"keys": [...]}`` entries or
            a flat ``{key_id: private_key_b64}`` map.

    Returns:
        Dict[str, str]: Key ID to private key map, in file order.

    Raises:
        SystemExit: If the keyfile is missing, unreadable, or has an
            entry without `key_id` or `private_key_b64`.
    """
    if not keys_path.is_file():
        _cli_error(
            f"Private key file not found: {keys_path}",
            "signing requires the entity's private key material",
            "provide a valid `--keyfile` path",
        )
    try:
        data = json.loads(keys_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        _cli_error(
            f"Private key file is not valid JSON: {keys_path}",
            str(exc),
            "rewrite the keyfile as {\"keys\": [{\"key_id\": ..., \"private_key_b64\": ...}]}",
        )

    if isinstance(data, dict) and isinstance(data.get("keys"), list):
        keys = {}
        for index, entry in enumerate(data["keys"]):
            if not isinstance(entry, dict) or "key_id" not in entry or "private_key_b64" not in entry:
                _cli_error(
                    f"Private key file entry {index} is incomplete: {keys_path}",
                    "each key entry needs `key_id` and `private_key_b64`",
                    "rewrite the keyfile as {\"keys\": [{\"key_id\": ..., \"private_key_b64\": ...}]}",
                )
            keys[str(entry["key_id"])] = str(entry["private_key_b64"])
        return keys
    if isinstance(data, dict):
        return {str(k): str(v) for k, v in data.items()}
    _cli_error(
        f"Private key file has an unexpected layout: {keys_path}",
        "expected a JSON object",
        "rewrite the keyfile as {\"keys\": [{\"key_id\": ..., \"private_key_b64\": ...}]}",
    )


def cmd_canonicalize(args: argparse.Namespace) -> None:
    """Handle ``fedsign canonicalize``."""
    _write_output(canonical_json(_read_input(args.path)), args.out)


def cmd_sign(args: argparse.Namespace) -> None:
    """Handle ``fedsign sign``.

    Args:
        args: Parsed CLI arguments with document path, entity, keyfile and
            optional key ID.
    """
    keys = _load_keys(Path(args.keyfile))
    if not keys:
        _cli_error(
            f"No keys in {args.keyfile}",
            "at least one signing key is required",
            "add a key entry to the keyfile",
        )
    key_id = args.key_id or next(iter(keys))
    if key_id not in keys:
        _cli_error(
            f"Key {key_id} not found in {args.keyfile}",
            "the selected key is not present in the supplied keyfile so the document cannot be signed",
            "use `--key-id` that exists in the file or supply the correct `--keyfile`",
        )

    private_key = _decode_key(keys[key_id], f"private key {key_id}")
    document = _read_input(args.path)
    logger.debug("signing %s as %s with %s", args.path or "<stdin>", args.entity, key_id)
    _write_output(sign_json(args.entity, key_id, private_key, document), args.out)


def cmd_verify(args: argparse.Namespace) -> None:
    """Handle ``fedsign verify``.

    Args:
        args: Parsed CLI arguments with document path, entity, key ID and
            base64 public key.
    """
    public_key = _decode_key(args.public_key, "public key")
    verify_json(args.entity, args.key_id, public_key, _read_input(args.path))
    print(f"OK: signature from {args.entity} with {args.key_id} is valid.")


def main() -> None:
    """CLI entrypoint.

    Parses command-line arguments, configures logging, routes to a
    subcommand handler, and exits non-zero on any rejected document.
    """
    parser = argparse.ArgumentParser(prog="fedsign", description="Signed JSON CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    # canonicalize
    p_canon = sub.add_parser("canonicalize", help="Write the canonical form of a JSON document")
    p_canon.add_argument("path", nargs="?", help="Path to JSON document ('-' for stdin)")
    p_canon.add_argument("--out", help="Write output to this path instead of stdout")

    # sign
    p_sign = sub.add_parser("sign", help="Sign a JSON document")
    p_sign.add_argument("path", nargs="?", help="Path to JSON document ('-' for stdin)")
    p_sign.add_argument("--entity", required=True, help="Signing entity name (e.g. server name)")
    p_sign.add_argument("--keyfile", required=True, help="Path to your private keys JSON")
    p_sign.add_argument("--key-id", help="Key ID to sign with (defaults to the first key)")
    p_sign.add_argument("--out", help="Write the signed document to this path")

    # verify
    p_verify = sub.add_parser("verify", help="Verify a signature on a JSON document")
    p_verify.add_argument("path", nargs="?", help="Path to JSON document ('-' for stdin)")
    p_verify.add_argument("--entity", required=True, help="Entity whose signature to check")
    p_verify.add_argument("--key-id", required=True, help="Key ID of the signature, e.g. ed25519:1")
    p_verify.add_argument("--public-key", required=True, help="Public key (base64)")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "canonicalize": cmd_canonicalize(args)
        elif args.command == "sign": cmd_sign(args)
        elif args.command == "verify": cmd_verify(args)
    except FedSignError as err:
        _fail_with_error(err)

if __name__ == "__main__":
    main()
