"""Command-line interface for cookbook synchronization.

This module provides the ``cookbook-sync`` entry point for uploading,
downloading, listing and deleting cookbooks on a Chef server.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import ServerConfig
from .core.errors import CookbookSyncError
from .query import format_cookbook_list
from .service import CookbookService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cookbook-sync",
        description="Synchronize Chef cookbooks with a Chef server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload ./cookbooks/apache2 as version 1.0.0
  cookbook-sync --server https://chef.example.com/organizations/acme \\
      upload --path cookbooks --name apache2 --version 1.0.0

  # Download it again
  cookbook-sync download --name apache2 --version 1.0.0 --dest /tmp/cookbooks

  # List all versions of all cookbooks
  cookbook-sync list --num-versions all

The server URL can also be set with CHEF_SERVER_URL.
        """,
    )

    parser.add_argument("--server", help="Chef server URL (default: $CHEF_SERVER_URL)")
    parser.add_argument("--client", help="API client name (default: $CHEF_CLIENT_NAME)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument(
        "--no-verify-ssl",
        dest="verify_ssl",
        action="store_false",
        default=None,
        help="Disable TLS certificate verification",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Upload a cookbook directory")
    upload.add_argument("--path", required=True, help="Directory containing the cookbook directory")
    upload.add_argument("--name", required=True, help="Cookbook name (directory name below --path)")
    upload.add_argument("--version", required=True, help="Cookbook version to publish")
    upload.add_argument("--metadata", help="JSON metadata file (default: <cookbook>/metadata.json)")

    download = subparsers.add_parser("download", help="Download a cookbook version")
    download.add_argument("--name", required=True, help="Cookbook name")
    download.add_argument("--version", default="_latest", help="Cookbook version (default: _latest)")
    download.add_argument("--dest", required=True, help="Destination directory")

    list_parser = subparsers.add_parser("list", help="List cookbooks")
    list_parser.add_argument("--name", help="Only list versions of this cookbook")
    list_parser.add_argument(
        "--num-versions", default="", help='Number of versions to list ("0" or "all" for all)'
    )
    list_parser.add_argument("--json", action="store_true", help="Print raw JSON")

    show = subparsers.add_parser("show", help="Print the manifest of a cookbook version")
    show.add_argument("--name", required=True, help="Cookbook name")
    show.add_argument("--version", default="_latest", help="Cookbook version (default: _latest)")

    delete = subparsers.add_parser("delete", help="Delete a cookbook version")
    delete.add_argument("--name", required=True, help="Cookbook name")
    delete.add_argument("--version", required=True, help="Cookbook version")

    return parser


def load_metadata_file(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def run(args: argparse.Namespace, service: CookbookService) -> None:
    """Execute a parsed command against a service."""
    if args.command == "upload":
        metadata = load_metadata_file(args.metadata) if args.metadata else None
        result = service.upload(args.name, args.version, Path(args.path), metadata)
        print(
            f"Uploaded {result.manifest['name']}: {len(result.uploaded)} new files, "
            f"{result.skipped} already on server",
            file=sys.stderr,
        )
        json.dump(result.manifest, sys.stdout, indent=2)
        print()

    elif args.command == "download":
        basedir = service.download(args.name, args.version, Path(args.dest))
        print(f"Downloaded {args.name} to {basedir}", file=sys.stderr)

    elif args.command == "list":
        if args.name:
            result = service.get(args.name, args.num_versions)
        else:
            result = service.list(args.num_versions)
        if args.json:
            json.dump(result, sys.stdout, indent=2)
            print()
        else:
            sys.stdout.write(format_cookbook_list(result))

    elif args.command == "show":
        json.dump(service.get_version(args.name, args.version), sys.stdout, indent=2)
        print()

    elif args.command == "delete":
        service.delete(args.name, args.version)
        print(f"Deleted {args.name} {args.version}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the cookbook-sync command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = ServerConfig.from_env(
            server_url=args.server,
            client_name=args.client,
            timeout=args.timeout,
            verify_ssl=args.verify_ssl,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    service = CookbookService.from_config(config)
    try:
        run(args, service)
    except CookbookSyncError as e:
        print(f"Error: {e.phase} failed: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        service.close()


if __name__ == "__main__":
    main()
