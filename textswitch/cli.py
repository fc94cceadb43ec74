#!/usr/bin/env python3
"""
TextSwitch CLI entry point.

``textswitch trigger`` runs one conversion and is meant to be bound to a
desktop-environment keyboard shortcut.  The other sub-commands inspect and
edit conversion profiles.
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import sys
from pathlib import Path

from textswitch import __version__

# Global logger instance
logger = None


def setup_logging(debug: bool = False, log_file: str | None = None) -> logging.Logger:
    """Setup logging to both console and file

    Args:
        debug: Enable debug level logging
        log_file: Path to log file (default: ~/.textswitch.log)
    """
    global logger

    if logger is not None:
        return logger

    logger = logging.getLogger('textswitch')
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    if log_file is None:
        log_file = os.path.expanduser('~/.textswitch.log')

    fmt = logging.Formatter(
        '[%(asctime)s] %(levelname)-8s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler (rotate log file when it gets too large)
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10 MB
            backupCount=5,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(fmt)
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

    # Console handler (only warnings in production, all in debug)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_handler.setFormatter(fmt)
    logger.addHandler(console_handler)

    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='textswitch',
        description='Retype text that was typed in the wrong keyboard layout',
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug mode with verbose logging')
    parser.add_argument('--config', type=str, default=None, help='Path to config file')
    parser.add_argument('--logfile', type=str, default=None,
                        help='Path to log file (default: ~/.textswitch.log)')
    parser.add_argument('--version', action='version', version='%(prog)s ' + __version__)

    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('trigger', help='Convert the selection / current command in the focused window')

    p_convert = sub.add_parser('convert', help='Print the conversion of TEXT with the active profile')
    p_convert.add_argument('text')

    p_profiles = sub.add_parser('profiles', help='Manage conversion profiles')
    psub = p_profiles.add_subparsers(dest='action', required=True)
    psub.add_parser('list', help='List profiles (* marks the active one)')
    p = psub.add_parser('activate', help='Make a profile active')
    p.add_argument('id')
    p = psub.add_parser('create', help='Create an empty (or copied) editable profile')
    p.add_argument('name')
    p.add_argument('--based-on', default=None, metavar='ID')
    p = psub.add_parser('duplicate', help='Duplicate a profile')
    p.add_argument('id')
    p = psub.add_parser('delete', help='Delete a profile')
    p.add_argument('id')
    p = psub.add_parser('set', help='Set one mapping entry of an editable profile')
    p.add_argument('id')
    p.add_argument('key')
    p.add_argument('value')
    p = psub.add_parser('unset', help='Remove one mapping entry of an editable profile')
    p.add_argument('id')
    p.add_argument('key')
    return parser


def _profiles_command(app, args) -> int:
    store = app.store
    if args.action == 'list':
        for profile in store.profiles:
            mark = '*' if profile.id == store.active_profile_id else ' '
            flag = '' if profile.is_editable else ' [built-in]'
            print(f"{mark} {profile.id}  {profile.name}{flag}  ({len(profile.mapping)} entries)")
        return 0
    if args.action == 'activate':
        store.set_active_profile(args.id)
        return 0
    if args.action == 'create':
        print(store.create_profile(args.name, based_on=args.based_on).id)
        return 0
    if args.action == 'duplicate':
        print(store.duplicate_profile(args.id).id)
        return 0
    if args.action == 'delete':
        store.delete_profile(args.id)
        return 0
    profile = store.get_profile(args.id)
    if args.action == 'set':
        profile.mapping[args.key] = args.value
    else:
        profile.mapping.pop(args.key, None)
    store.update_profile(profile)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for TextSwitch"""
    args = build_parser().parse_args(argv)
    log = setup_logging(debug=args.debug, log_file=args.logfile)
    log.debug("TextSwitch %s, command=%s, PID %d", __version__, args.command, os.getpid())

    # Import after args parsing to avoid import-time side effects
    from textswitch.app import TextSwitchApp
    from textswitch.errors import ProfileError

    try:
        app = TextSwitchApp(config_path=args.config, debug=args.debug)
    except OSError as e:
        log.error("Failed to start: %s", e)
        return 1

    try:
        if args.command == 'trigger':
            ctx = app.trigger()
            log.debug("Trigger finished: %s", ctx.outcome.name)
            return 0
        if args.command == 'convert':
            print(app.transformer.transform(args.text))
            print(f"dominant side: {app.transformer.detect_dominant_side(args.text).value}",
                  file=sys.stderr)
            return 0
        return _profiles_command(app, args)
    except (ProfileError, ValueError) as e:
        print(f"textswitch: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        log.error("I/O error: %s", e)
        return 1
    except KeyboardInterrupt:
        return 130
    finally:
        app.close()


if __name__ == '__main__':
    sys.exit(main())
