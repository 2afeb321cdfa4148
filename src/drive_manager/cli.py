"""CLI for drive-manager.

Usage:
    drive-manager list --files|--folders|--all     # List Drive entries
    drive-manager download --fileId ID --filename NAME
    drive-manager upload --filepath PATH

Global options (before the subcommand):
    --credentials PATH   OAuth client credentials (default: ~/.drive-manager/credentials.json)
    --token PATH         Cached OAuth token (default: ~/.drive-manager/token.json)
    --port N             Local OAuth callback port (default: 8000)
    --timeout SECONDS    Wait for the OAuth redirect (default: 300, 0 = forever)
    --no-browser         Print the authorization URL without opening a browser
    -v, --verbose        Log progress to stderr
"""

from __future__ import annotations

import argparse
import logging
import sys

from drive_manager.commands import COMMANDS, dispatch
from drive_manager.exceptions import DriveManagerError, UsageError

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2


def port_number(value: str) -> int:
    """argparse type for a TCP port (0 picks a free one)."""
    port = int(value)
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be 0-65535, got {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="drive-manager",
        description="List, download, and upload Google Drive files",
    )
    parser.add_argument("--credentials", help="Path to OAuth credentials.json")
    parser.add_argument("--token", help="Path to cached token.json")
    parser.add_argument("--port", type=port_number, help="Local OAuth callback port")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for the OAuth redirect")
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    parser.add_argument(
        "command",
        nargs="?",
        help=f"Subcommand: {', '.join(cmd.name for cmd in COMMANDS)}",
    )
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Subcommand flags")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def make_client_factory(args: argparse.Namespace):
    """Return a callable that authorizes and builds the Drive client."""

    def factory():
        from drive_manager.drive import DriveClient
        from drive_manager.google import GoogleOAuth

        auth = GoogleOAuth(
            scopes=["drive"],
            token_path=args.token,
            credentials_path=args.credentials,
            callback_port=args.port,
        )
        return DriveClient(auth=auth, auth_timeout=args.timeout, open_browser=not args.no_browser)

    return factory


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    configure_logging(args.verbose)

    if args.command is None:
        parser.print_help(sys.stderr)
        print("\nError: you must pass a sub-command", file=sys.stderr)
        return EXIT_USAGE

    try:
        dispatch([args.command, *args.args], make_client_factory(args))
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except DriveManagerError as e:
        logger.debug("Subcommand failed", exc_info=True)
        print(f"Error: subcommand {args.command} failed: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("\nAborted", file=sys.stderr)
        return EXIT_FAILURE

    return 0


if __name__ == "__main__":
    sys.exit(main())
