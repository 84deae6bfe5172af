"""
Command line tool for the Solver SDK.

    solver-cli sign payload.json        sign a JSON payload with SOLVER_PRIVATE_KEY
    solver-cli validate proposal.json   check a proposal against the schema
    solver-cli verify response.json     check the signature of a signed response

Use ``-`` to read from stdin.
"""
import argparse
import json
import logging
import sys
from typing import Any, List, Optional, TextIO

from dotenv import load_dotenv
from pydantic import ValidationError

from .config import PRIVATE_KEY_ENV, log_level_from_env, signing_key_from_env
from .exceptions import ConfigurationError, SigningError
from .models import ProposalResponse
from .signer import sign_payload, verify_response
from .version import __version__


def _read_json(path: str, stdin: TextIO) -> Any:
    if path == "-":
        return json.load(stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def cmd_sign(args: argparse.Namespace, out: TextIO, stdin: TextIO) -> int:
    try:
        key = signing_key_from_env()
        if key is None:
            print(f"error: {PRIVATE_KEY_ENV} is not set", file=sys.stderr)
            return 2
        signed = sign_payload(_read_json(args.file, stdin), key)
    except (ConfigurationError, SigningError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(signed.model_dump_json(), file=out)
    return 0


def cmd_validate(args: argparse.Namespace, out: TextIO, stdin: TextIO) -> int:
    try:
        ProposalResponse.model_validate(_read_json(args.file, stdin))
    except ValidationError as e:
        print(json.dumps(e.errors(include_url=False, include_context=False), default=str, indent=2), file=out)
        return 1

    print("valid", file=out)
    return 0


def cmd_verify(args: argparse.Namespace, out: TextIO, stdin: TextIO) -> int:
    response = _read_json(args.file, stdin)
    if verify_response(response):
        print(f"valid signature from {response['signer']}", file=out)
        return 0

    print("invalid signature", file=out)
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="solver-cli", description="Solver SDK tools.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", help="Enable debug output", action="store_true")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sign = subparsers.add_parser("sign", help=f"Sign a JSON payload with {PRIVATE_KEY_ENV}")
    sign.add_argument("file", help="JSON file to sign ('-' for stdin)")
    sign.set_defaults(func=cmd_sign)

    validate = subparsers.add_parser("validate", help="Validate a proposal")
    validate.add_argument("file", help="Proposal JSON file ('-' for stdin)")
    validate.set_defaults(func=cmd_validate)

    verify = subparsers.add_parser("verify", help="Verify a signed response")
    verify.add_argument("file", help="Signed response JSON file ('-' for stdin)")
    verify.set_defaults(func=cmd_verify)

    return parser


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None, stdin: Optional[TextIO] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    out = out or sys.stdout
    stdin = stdin or sys.stdin

    try:
        level = logging.DEBUG if args.debug else log_level_from_env()
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args, out, stdin)
    except (OSError, ValueError) as e:
        # ValueError covers malformed JSON input
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
