"""
FTP-LinkFS - Command line entry point

Runs single filesystem operations against an FTP server, through either the
blocking or the asyncio calling convention.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

from .config import load_config
from .exceptions import ConflictError, NotEmptyError
from .filesystem import FTPFileSystem
from .logger import setup_logging
from .metadata import LinkInfo, LinkMetadata, ListingOptions

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="ftp-linkfs",
        description="FTP-LinkFS - File operations on an FTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ftp-linkfs --host 192.168.0.130 --port 2121 ls /
  ftp-linkfs --config config.ini get /backup/db.sql ./db.sql
  ftp-linkfs --host ftp.example.com --async put ./report.pdf /inbox/report.pdf --overwrite
        """,
    )
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--host", help="FTP host or ftp://host:port address")
    parser.add_argument("--port", type=int, help="FTP Port")
    parser.add_argument("--user", help="FTP Username")
    parser.add_argument("--password", help="FTP Password")
    parser.add_argument("--active", action="store_true", help="Use active mode transfers")
    parser.add_argument(
        "--async", dest="use_async", action="store_true", help="Use the asyncio transport"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ls_parser = subparsers.add_parser("ls", help="List a directory")
    ls_parser.add_argument("path", nargs="?", default="/")
    ls_parser.add_argument("-r", "--recursive", action="store_true", help="Include subdirectories")

    stat_parser = subparsers.add_parser("stat", help="Show information about a path")
    stat_parser.add_argument("path")

    get_parser = subparsers.add_parser("get", help="Download a file")
    get_parser.add_argument("remote")
    get_parser.add_argument("local")

    put_parser = subparsers.add_parser("put", help="Upload a file")
    put_parser.add_argument("local")
    put_parser.add_argument("remote")
    put_parser.add_argument("--overwrite", action="store_true", help="Replace an existing file")

    rm_parser = subparsers.add_parser("rm", help="Delete a file")
    rm_parser.add_argument("path")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a directory and its parents")
    mkdir_parser.add_argument("path")

    rmdir_parser = subparsers.add_parser("rmdir", help="Delete a directory")
    rmdir_parser.add_argument("path")
    rmdir_parser.add_argument("-r", "--recursive", action="store_true", help="Delete contents too")

    mv_parser = subparsers.add_parser("mv", help="Move a file or directory")
    mv_parser.add_argument("source")
    mv_parser.add_argument("destination")
    mv_parser.add_argument("--overwrite", action="store_true", help="Replace an existing file")
    mv_parser.add_argument("-d", "--directory", action="store_true", help="Source is a directory")

    hash_parser = subparsers.add_parser("hash", help="Ask the server for a file hash")
    hash_parser.add_argument("path")

    touch_parser = subparsers.add_parser("touch", help="Set the modification time of a file")
    touch_parser.add_argument("path")
    touch_parser.add_argument("--time", help="ISO 8601 timestamp (default: now, UTC)")

    return parser.parse_args(argv)


def _run(fs: FTPFileSystem, use_async: bool, method: str, *args):
    """Call one filesystem operation, then close the filesystem."""
    if not use_async:
        with fs:
            return getattr(fs, method)(*args)

    async def _main():
        async with fs:
            return await getattr(fs, method + "_async")(*args)

    return asyncio.run(_main())


def _format_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-" * 19


def format_entry(info: LinkInfo) -> str:
    kind = "d" if info.is_directory else "-"
    access = ("r" if info.can_read else "-") + ("w" if info.can_write else "-")
    return f"{kind}{access} {info.length:>12} {_format_time(info.last_write_time)} {info.full_name}"


def _parse_time(value: str | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def cmd_ls(fs, args):
    entries = _run(fs, args.use_async, "list_directory", args.path, ListingOptions(args.recursive))
    for info in entries:
        print(format_entry(info))
    return 0


def cmd_stat(fs, args):
    info = _run(fs, args.use_async, "get_link_info", args.path)
    if info is None:
        print(f"[ERROR] Not found: {args.path}")
        return 1
    print(format_entry(info))
    print(f"     Created:  {_format_time(info.creation_time)}")
    print(f"     Modified: {_format_time(info.last_write_time)}")
    return 0


def cmd_get(fs, args):
    with open(args.local, "wb") as sink:
        _run(fs, args.use_async, "read_file", args.remote, sink)
    print(f"[OK] {args.remote} -> {args.local}")
    return 0


def cmd_put(fs, args):
    with open(args.local, "rb") as source:
        info = _run(fs, args.use_async, "write_file", args.remote, source, args.overwrite)
    size = info.length if info is not None else "?"
    print(f"[OK] {args.local} -> {args.remote} ({size} bytes)")
    return 0


def cmd_rm(fs, args):
    _run(fs, args.use_async, "delete_file", args.path)
    print(f"[OK] Deleted {args.path}")
    return 0


def cmd_mkdir(fs, args):
    _run(fs, args.use_async, "create_directory", args.path)
    print(f"[OK] Created {args.path}")
    return 0


def cmd_rmdir(fs, args):
    _run(fs, args.use_async, "delete_directory", args.path, args.recursive)
    print(f"[OK] Deleted {args.path}")
    return 0


def cmd_mv(fs, args):
    if args.directory:
        _run(fs, args.use_async, "move_directory", args.source, args.destination)
    else:
        _run(fs, args.use_async, "move_file", args.source, args.destination, args.overwrite)
    print(f"[OK] {args.source} -> {args.destination}")
    return 0


def cmd_hash(fs, args):
    resolution = _run(fs, args.use_async, "resolve_hash", args.path)
    if not resolution.supported:
        print("[ERROR] Server does not support hashing")
        return 1
    if resolution.hash is None:
        print(f"[ERROR] No hash available for {args.path}")
        return 1
    print(f"{resolution.hash.algorithm.value} {resolution.hash.value}  {args.path}")
    return 0


def cmd_touch(fs, args):
    metadata = LinkMetadata(last_write_time=_parse_time(args.time))
    _run(fs, args.use_async, "update_metadata", args.path, metadata)
    print(f"[OK] Updated {args.path}")
    return 0


COMMANDS = {
    "ls": cmd_ls,
    "stat": cmd_stat,
    "get": cmd_get,
    "put": cmd_put,
    "rm": cmd_rm,
    "mkdir": cmd_mkdir,
    "rmdir": cmd_rmdir,
    "mv": cmd_mv,
    "hash": cmd_hash,
    "touch": cmd_touch,
}


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.command is None:
        print("Usage: ftp-linkfs [options] <command> [args]")
        print()
        print("Commands: " + ", ".join(COMMANDS))
        print()
        print("Run 'ftp-linkfs --help' for more information.")
        return 1

    try:
        address = args.host if args.host and "://" in args.host else None
        config = load_config(
            config_path=args.config,
            address=address,
            host=None if address else args.host,
            port=args.port,
            username=args.user,
            password=args.password,
            active_mode=args.active,
            debug=args.verbose,
        )
        setup_logging(config.logging)

        fs = FTPFileSystem(config.ftp, config.connection, config.permissions)
        return COMMANDS[args.command](fs, args)

    except ValueError as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except ConflictError as e:
        print(f"[ERROR] Already exists: {e}")
        return 1
    except NotEmptyError as e:
        print(f"[ERROR] {e}")
        return 1
    except FileNotFoundError as e:
        print(f"[ERROR] Not found: {e}")
        return 1
    except PermissionError as e:
        print(f"[ERROR] Permission denied: {e}")
        return 1
    except (ConnectionError, TimeoutError) as e:
        logger.error("Failed to reach server: %s", e)
        print(f"[ERROR] Could not connect to server: {e}")
        return 1
    except OSError as e:
        print(f"[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
