"""
Lintgate Backend: API Key Management CLI
=========================================

What:  Command-line administration of the credential file.
How:   Uses the same CredentialStore and settings as the server, so keys
       created here are valid immediately (the server reloads nothing; it
       reads the file lazily on first use after start).
Who:   Operators. This is the only way to mint keys when
       ENVIRONMENT=production.

Usage:
    lintgate-keys list
    lintgate-keys generate [--name NAME] [--scopes analyze,standards] [--expires TS]
    lintgate-keys revoke KEY
    lintgate-keys info KEY
"""

import argparse
import sys
from datetime import datetime, timezone
from typing import List, Optional

from lintgate.config import get_settings
from lintgate.exceptions import StorageError
from lintgate.models.credential import Credential
from lintgate.services.credential_store import CredentialStore


def _format_time(ts: Optional[int]) -> str:
    if ts is None:
        return "Never"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _status(credential: Credential) -> str:
    if not credential.active:
        return "Revoked"
    if credential.is_expired():
        return "Expired"
    return "Active"


def cmd_list(store: CredentialStore, args: argparse.Namespace) -> int:
    keys = store.list()
    if not keys:
        print("No API keys found.")
        return 0

    print("API Keys:")
    print("-" * 80)
    print(f"{'Key':<48} {'Name':<20} {'Status':<10}")
    print("-" * 80)
    for token, credential in keys.items():
        print(f"{token:<48} {(credential.name or 'Unnamed')[:20]:<20} {_status(credential):<10}")
    return 0


def cmd_generate(store: CredentialStore, args: argparse.Namespace) -> int:
    data = {}
    if args.name:
        data["name"] = args.name
    if args.scopes:
        data["scopes"] = [s.strip() for s in args.scopes.split(",") if s.strip()]
    if args.expires is not None:
        data["expires"] = args.expires

    try:
        key = store.generate(data)
    except StorageError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    credential = store.lookup(key)
    print("API key generated successfully:")
    print(key)
    print()
    print("Key details:")
    print(f"Name: {credential.name or 'Unnamed'}")
    print(f"Scopes: {', '.join(credential.scopes)}")
    print(f"Expires: {_format_time(credential.expires)}")
    print()
    print("Store this key securely. It will not be shown again.")
    return 0


def cmd_revoke(store: CredentialStore, args: argparse.Namespace) -> int:
    if store.revoke(args.key):
        print("API key revoked successfully.")
        return 0
    print("Error: API key not found or could not be revoked.", file=sys.stderr)
    return 1


def cmd_info(store: CredentialStore, args: argparse.Namespace) -> int:
    credential = store.lookup(args.key)
    if credential is None:
        print("Error: API key not found.", file=sys.stderr)
        return 1

    print("API Key Information:")
    print(f"Key: {args.key}")
    print(f"Name: {credential.name or 'Unnamed'}")
    print(f"Status: {_status(credential)}")
    print(f"Created: {_format_time(credential.created)}")
    print(f"Expires: {_format_time(credential.expires)}")
    print(f"Scopes: {', '.join(credential.scopes)}")
    for name, value in sorted(credential.metadata.items()):
        print(f"{name}: {value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lintgate-keys", description="Manage Lintgate API keys")
    parser.add_argument(
        "--keys-file",
        help="Credential file (default: AUTH__KEYS_FILE or ./data/api_keys.json)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List all API keys").set_defaults(handler=cmd_list)

    generate = sub.add_parser("generate", help="Generate a new API key")
    generate.add_argument("--name", help="Name or description for the key")
    generate.add_argument("--scopes", help="Comma-separated scopes (default: from settings)")
    generate.add_argument("--expires", type=int, help="Expiry as epoch seconds (default: never)")
    generate.set_defaults(handler=cmd_generate)

    revoke = sub.add_parser("revoke", help="Revoke an API key")
    revoke.add_argument("key")
    revoke.set_defaults(handler=cmd_revoke)

    info = sub.add_parser("info", help="Show information about an API key")
    info.add_argument("key")
    info.set_defaults(handler=cmd_info)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    store = CredentialStore.from_file(
        args.keys_file or settings.auth.keys_file,
        default_scopes=settings.auth.default_scopes,
    )
    return args.handler(store, args)


if __name__ == "__main__":
    sys.exit(main())
