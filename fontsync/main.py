"""
FontSync - Main Entry Point

Parses command-line arguments and runs the requested operating mode.

Author: FontSync Project
"""

import sys
import argparse

from fontsync import __version__
from fontsync.models import SyncMode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fontsync',
        description='FontSync - keep font directories in sync with a central server'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--no-gui', action='store_true',
                        help='Run headless (every mode is headless; accepted for compatibility)')
    parser.add_argument('--config', metavar='FILE',
                        help='Path to the JSON config file (default: ./fontsync.json)')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        type=str.upper, help='Log level (overrides config)')

    subparsers = parser.add_subparsers(dest='mode', metavar='MODE', required=True)

    serve = subparsers.add_parser('serve', help='Serve a font directory to clients')
    serve.add_argument('--host', help='Interface to bind')
    serve.add_argument('--port', type=int, help='Port to bind')
    serve.add_argument('--font-dir', help='Authoritative font directory')
    serve.add_argument('--watch-mode', choices=['poll', 'events'],
                       help='Rescan on a fixed interval or on filesystem notifications')
    serve.add_argument('--rescan-interval', type=float, metavar='SECONDS',
                       help='Seconds between rescans in poll mode')

    sync = subparsers.add_parser('sync', help='Run one sync pass and exit')
    sync.add_argument('--server-url', help='Server URL, e.g. http://fonts.local:8080')
    sync.add_argument('--local-dir', help="Local font directory to keep in sync (default: the user's font folder)")
    sync.add_argument('--strict', action='store_true', default=None,
                      help='Fail if any single file fails')

    monitor = subparsers.add_parser('monitor', help='Sync now and again on every server change')
    monitor.add_argument('--server-url', help='Server URL, e.g. http://fonts.local:8080')
    monitor.add_argument('--local-dir', help="Local font directory to keep in sync (default: the user's font folder)")

    return parser


def collect_overrides(args: argparse.Namespace) -> dict:
    """Map parsed arguments onto config keys; unset options stay None."""
    return {
        "log_level": args.log_level,
        "host": getattr(args, "host", None),
        "port": getattr(args, "port", None),
        "font_dir": getattr(args, "font_dir", None),
        "watch_mode": getattr(args, "watch_mode", None),
        "rescan_interval_seconds": getattr(args, "rescan_interval", None),
        "server_url": getattr(args, "server_url", None),
        "local_dir": getattr(args, "local_dir", None),
        "strict": getattr(args, "strict", None)
    }


def main(argv=None) -> int:
    """
    Main entry point for FontSync.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    from fontsync.cli import run_cli_operation
    return run_cli_operation(SyncMode(args.mode), args.config, collect_overrides(args))


if __name__ == '__main__':
    sys.exit(main())
