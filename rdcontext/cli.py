"""Command-line interface for rdcontext.

    rdcontext add <owner/repo> [--branch B | --tag T] [--folders F ...] [--token T]
    rdcontext get <owner/repo> [topic] [--k N] [--cross-provider]
    rdcontext list
    rdcontext rm <owner/repo>
    rdcontext start [--transport http] [--port N]
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from rdcontext import __version__, handlers, name as package_name
from rdcontext.config import get_config
from rdcontext.errors import RdContextError
from rdcontext.ingest.pipeline import AddOptions
from rdcontext.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _lowercase(value: str) -> str:
    return value.lower()


def cmd_add(args: argparse.Namespace) -> int:
    """Index a library's documentation."""
    options = AddOptions(
        name=args.name,
        branch=args.branch,
        tag=args.tag,
        folders=list(args.folders or []),
        token=args.token,
    )
    try:
        summary = asyncio.run(handlers.add(options))
    except RdContextError as exc:
        logger.error("%s", exc.message)
        return 1
    except Exception as exc:
        logger.error("Failed to add %s: %s", args.name, exc)
        return 1
    print(f"Indexed {summary.snippets} snippets")
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    """Print snippets for a library, ranked by topic when one is given."""
    text = asyncio.run(handlers.get(
        args.name, topic=args.topic, k=args.k, cross_provider=args.cross_provider,
    ))
    print(text)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List indexed libraries."""
    for library in handlers.list_libraries():
        print(f"- {library.name}: {library.description or library.name}")
    return 0


def cmd_rm(args: argparse.Namespace) -> int:
    """Remove a library with its snippets and vectors."""
    removed = handlers.rm(args.name)
    if removed == 0:
        print(f"Library {args.name} not found")
        return 1
    print(f"Removed {args.name}")
    return 0


def cmd_start(args: argparse.Namespace) -> int:
    """Serve the HTTP API until interrupted."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "rdcontext.api.main:app",
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_level=config.logging.level.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=package_name,
        description="Index library documentation into searchable code snippets",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Add a library documentation to the server")
    add.add_argument("name", type=_lowercase, help="GitHub repository in <owner/repo> format")
    ref = add.add_mutually_exclusive_group()
    ref.add_argument("--branch", help="Git branch to parse")
    ref.add_argument("--tag", help="Git tag to parse")
    add.add_argument("--folders", nargs="+", help="Repository folders with documentation files")
    add.add_argument("--token", help="GitHub token, required to access private repositories")
    add.set_defaults(func=cmd_add)

    get = subparsers.add_parser("get", help="Get snippets for a library")
    get.add_argument("name", type=_lowercase, help="Library in <owner/repo> format")
    get.add_argument("topic", nargs="?", help="Topic to rank snippets by")
    get.add_argument("-k", "--k", type=int, default=10, help="Number of snippets (default: 10)")
    get.add_argument(
        "--cross-provider",
        action="store_true",
        help="Search snippets embedded by any provider",
    )
    get.set_defaults(func=cmd_get)

    lst = subparsers.add_parser("list", help="List libraries added to the server")
    lst.set_defaults(func=cmd_list)

    rm = subparsers.add_parser("rm", help="Remove a library from the server")
    rm.add_argument("name", type=_lowercase, help="Library in <owner/repo> format")
    rm.set_defaults(func=cmd_rm)

    start = subparsers.add_parser("start", help="Start the rdcontext server")
    start.add_argument(
        "-t", "--transport", choices=["http"], default="http", help="Transport type"
    )
    start.add_argument("-p", "--port", type=int, default=None, help="Port for HTTP transport")
    start.add_argument("--host", default=None, help="Interface to bind")
    start.set_defaults(func=cmd_start)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("debug" if args.verbose else get_config().logging.level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
