"""
Module 09C - CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m divtokens_cli keygen --out issuer.pem [--bits N] [--json]
    python -m divtokens_cli demo [--json] [--repetitions N] [--receipt-out PATH]
    python -m divtokens_cli inspect <receipt> --key issuer.pem.pub [--json]
    python -m divtokens_cli serve [--host HOST] [--port PORT]
    python -m divtokens_cli config --init

Environment Variables:
    DIVTOKENS_MAX_DENOMINATION   Largest token depth the Exchange issues (default: 32)
    DIVTOKENS_PROOF_REPETITIONS  Spend proof repetitions (default: 219)
    DIVTOKENS_VERIFY_WORKERS     Batch verification threads (default: 4)
    DIVTOKENS_LEDGER_BACKEND     Spent-set backend: memory, sqlite
    DIVTOKENS_ISSUER_KEY         Path to the issuer PEM key
    DIVTOKENS_LOG_LEVEL          Log level (default: INFO)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from divtokens_cli.commands import demo, inspect, keygen
from divtokens_cli.config import get_default_config_template, load_config


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON summary",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Print tracebacks on error",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="divtokens",
        description="divtokens CLI - Issue, spend and verify divisible anonymous billing tokens.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./divtokens.yaml or ~/.config/divtokens/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- keygen command ---
    keygen_parser = subparsers.add_parser(
        "keygen",
        help="Generate an issuer key",
        description="Generate an RSA issuer key for blind issuance.",
    )
    keygen_parser.add_argument(
        "--out", "-o",
        type=str,
        required=True,
        help="Output path for the private key (public key goes to PATH.pub)",
    )
    keygen_parser.add_argument(
        "--bits",
        type=int,
        default=None,
        help="Modulus size in bits (default: from config, 2048)",
    )
    keygen_parser.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite an existing key file",
    )
    _add_output_flags(keygen_parser)
    keygen_parser.set_defaults(func=keygen.keygen_cmd)

    # --- demo command ---
    demo_parser = subparsers.add_parser(
        "demo",
        help="Run the end-to-end scenario in process",
        description="Withdraw, spend at two publishers, replay, and settle against an in-process Exchange.",
    )
    demo_parser.add_argument(
        "--repetitions", "-r",
        type=int,
        default=None,
        help="Spend proof repetitions (default: from config)",
    )
    demo_parser.add_argument(
        "--key",
        type=str,
        default=None,
        help="Issuer private key to use (default: generate one)",
    )
    demo_parser.add_argument(
        "--receipt-out",
        type=str,
        default=None,
        help="Write the first receipt (base64) to this path",
    )
    _add_output_flags(demo_parser)
    demo_parser.set_defaults(func=demo.demo_cmd)

    # --- inspect command ---
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Decode and verify a spend receipt",
        description="Check a receipt's issuance signature and spend proof offline.",
    )
    inspect_parser.add_argument(
        "receipt",
        type=str,
        help="Path to the receipt (raw bytes or base64)",
    )
    inspect_parser.add_argument(
        "--key", "-k",
        type=str,
        required=True,
        help="Issuer key PEM (public or private)",
    )
    inspect_parser.add_argument(
        "--repetitions", "-r",
        type=int,
        default=None,
        help="Spend proof repetitions the receipt was made with (default: from config)",
    )
    _add_output_flags(inspect_parser)
    inspect_parser.set_defaults(func=inspect.inspect_cmd)

    # --- serve command ---
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the Exchange HTTP API",
        description="Serve the Exchange API with uvicorn.",
    )
    serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.set_defaults(func=serve_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
        description="Initialize or display configuration.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show current configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="divtokens.yaml",
        help="Path for config file (default: divtokens.yaml)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def serve_cmd(args: argparse.Namespace) -> int:
    """Handle serve command."""
    import uvicorn

    from api.app import create_app
    from api.deps import set_exchange
    from core.redemption.exchange import Exchange

    set_exchange(Exchange.from_config(args.runtime_config))
    uvicorn.run(create_app(), host=args.host, port=args.port)
    return EXIT_SUCCESS


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your settings.")
        print("You can also use environment variables (DIVTOKENS_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        print(json.dumps(args.runtime_config.to_dict(), indent=2))
        return EXIT_SUCCESS

    # Default: show help
    print("Usage: divtokens config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=verification failed)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    # Setup logging
    log_level = args.log_level or config.log_level
    setup_logging(level=log_level, log_file=args.log_file)

    # Attach config to args for commands to use
    args.runtime_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if hasattr(args, "debug") and args.debug:
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
