"""
Command-line interface for the expiry notifier.

This module provides the main CLI entry point with commands for:
- notify: Run the daily expiry notification for a session
- expiring: List the domains inside the warning window
- channels: Show which channels would be notified
- snooze / ack: Suppress or acknowledge today's alert
- config: Configuration management
"""

import argparse
import asyncio
import sys
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .audit_logger import AuditLogger
from .cadence_store import CadenceFileStore
from .channel_resolver import resolve
from .classifier import classify
from .config import (
    SystemConfig,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)
from .dispatcher import NotificationDispatcher
from .exceptions import ExpiryNotifierError
from .i18n import get_message
from .service import NotificationService
from .stores import EnvironmentOverrideSource, JsonDomainStore, JsonSettingsStore

DEFAULT_CONFIG_PATH = Path.home() / ".expiry_notifier" / "config.json"


def load_config(args: argparse.Namespace) -> SystemConfig:
    """
    Load the configuration file (if any) and apply command line overrides.

    Raises:
        ConfigurationError: If the config file is malformed
    """
    config = None
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Warning: config file not found: {args.config}", file=sys.stderr)
    if config is None:
        config = create_default_config()

    if getattr(args, "language", None):
        config = replace(config, language=args.language)
    if getattr(args, "dry_run", False):
        config = replace(config, simulation_mode=True)
    return config


def create_logger(config: SystemConfig, verbose: bool) -> Optional[AuditLogger]:
    """Audit logger for verbose runs, signing entries in audit mode."""
    if not verbose:
        return None
    logger = AuditLogger(output_format=config.logging.output_format)
    if config.logging.audit_mode and config.logging.audit_signing_key:
        logger.enable_audit_mode(config.logging.audit_signing_key)
    return logger


def create_service(args: argparse.Namespace, config: SystemConfig) -> NotificationService:
    """Wire the file-backed collaborators into a NotificationService."""
    logger = create_logger(config, getattr(args, "verbose", False))
    return NotificationService(
        domain_store=JsonDomainStore(Path(args.domains)),
        settings_store=JsonSettingsStore(Path(args.settings)),
        override_source=EnvironmentOverrideSource(),
        cadence_repository=CadenceFileStore(
            config.persistence.cadence_file_path,
            config.persistence.hmac_secret,
        ),
        dispatcher=NotificationDispatcher.from_config(config, audit_sink=logger),
    )


def _iso_date(value: str) -> date:
    """argparse type for --as-of."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def _today(args: argparse.Namespace) -> date:
    return getattr(args, "as_of", None) or date.today()


def cmd_notify(args: argparse.Namespace) -> int:
    """Handle the 'notify' command."""
    config = load_config(args)
    language = config.language

    if config.simulation_mode:
        print(get_message("simulation.enabled", language))

    service = create_service(args, config)
    # Dry runs never touch the cadence state
    result = asyncio.run(service.run(
        args.session,
        today=_today(args),
        force=args.force,
        record=not config.simulation_mode,
    ))

    if result.skipped:
        print(get_message("cli.skipped", language))
        return 0

    for line in result.dispatch.summary_lines(language):
        print(line)

    return 0 if result.dispatch.all_succeeded else 1


def cmd_expiring(args: argparse.Namespace) -> int:
    """Handle the 'expiring' command."""
    config = load_config(args)
    language = config.language

    settings = JsonSettingsStore(Path(args.settings))
    policy = settings.get_warning_policy()
    policy.validate()
    expiring = classify(
        JsonDomainStore(Path(args.domains)).list_domains(),
        policy.warning_days,
        _today(args),
    )

    if not expiring:
        print(get_message("cli.no_expiring", language))
        return 0

    print(get_message(
        "cli.expiring_header", language, count=len(expiring), days=policy.warning_days,
    ))
    for item in expiring:
        record = item.domain
        days = get_message("alert.days_value", language, days=item.days_remaining)
        print(f"  {record.name:<30} {record.registrar:<20} {record.expires_on.isoformat()}  {days}")
    return 0


def cmd_channels(args: argparse.Namespace) -> int:
    """Handle the 'channels' command."""
    config = load_config(args)
    language = config.language

    active = resolve(
        EnvironmentOverrideSource().get_override_credentials(),
        JsonSettingsStore(Path(args.settings)).get_persisted_credentials(),
    )
    if not active:
        print(get_message("cli.no_channels", language))
        return 0

    print(get_message("cli.channels_header", language))
    for item in active:
        missing = item.credentials.missing_fields()
        suffix = f" - missing {', '.join(missing)}" if missing else ""
        print(f"  {item.channel.value} ({item.source.value}){suffix}")
    return 0


def cmd_snooze(args: argparse.Namespace) -> int:
    """Handle the 'snooze' command."""
    config = load_config(args)
    service = create_service(args, config)
    asyncio.run(service.snooze(args.session, today=_today(args)))
    print(get_message("cli.snoozed", config.language))
    return 0


def cmd_ack(args: argparse.Namespace) -> int:
    """Handle the 'ack' command."""
    config = load_config(args)
    service = create_service(args, config)
    state = asyncio.run(service.acknowledge(args.session, today=_today(args), snooze=args.snooze))
    print(f"last_dispatch_date={state.last_dispatch_date} suppress_until_date={state.suppress_until_date}")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Language: {config.language}")
        print(f"  Simulation mode: {config.simulation_mode}")
        print(f"  Timeout: {config.delivery.timeout_seconds}s, deadline: {config.delivery.deadline_seconds}s")
        print(f"  Retries: {config.retry.max_retries}")
        print(f"  SMTP relay: {config.smtp.host if config.smtp else '-'}")
        print(f"  Cadence file: {config.persistence.cadence_file_path}")
        print(f"  Audit mode: {config.logging.audit_mode}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        save_config_to_file(create_default_config(language=args.language or "zh"), config_path)
        print(f"Configuration created at: {config_path}")
        return 0

    elif args.action == "validate":
        if load_config_from_file(config_path) is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--domains", "-d",
        default="domains.json",
        help="Path to the exported domain list (default: domains.json)",
    )
    parser.add_argument(
        "--settings", "-s",
        default="settings.json",
        help="Path to the notification settings document (default: settings.json)",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--language", "-l",
        choices=["zh", "en"],
        help="Output language (default: from config, zh)",
    )
    parser.add_argument(
        "--as-of",
        type=_iso_date,
        help="Treat this ISO date as today",
    )


def _add_session_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--session",
        default="default",
        help="Session key the daily cadence is tracked under (default: default)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="expiry-notifier",
        description="Domain expiry notifications over Telegram, WeChat, QQ, webhook and email",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'notify' command
    notify_parser = subparsers.add_parser(
        "notify",
        help="Notify all active channels about expiring domains (once per day)",
    )
    _add_common_arguments(notify_parser)
    _add_session_argument(notify_parser)
    notify_parser.add_argument(
        "--force",
        action="store_true",
        help="Notify even if this session was already notified or snoozed today",
    )
    notify_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulation mode - nothing is actually sent",
    )
    notify_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print audit log entries",
    )
    notify_parser.set_defaults(func=cmd_notify)

    # 'expiring' command
    expiring_parser = subparsers.add_parser(
        "expiring",
        help="List domains inside the warning window",
    )
    _add_common_arguments(expiring_parser)
    expiring_parser.set_defaults(func=cmd_expiring)

    # 'channels' command
    channels_parser = subparsers.add_parser(
        "channels",
        help="Show the channels a notification would go to",
    )
    _add_common_arguments(channels_parser)
    channels_parser.set_defaults(func=cmd_channels)

    # 'snooze' command
    snooze_parser = subparsers.add_parser(
        "snooze",
        help="Do not remind this session again today",
    )
    _add_common_arguments(snooze_parser)
    _add_session_argument(snooze_parser)
    snooze_parser.set_defaults(func=cmd_snooze)

    # 'ack' command
    ack_parser = subparsers.add_parser(
        "ack",
        help="Acknowledge today's alert for this session",
    )
    _add_common_arguments(ack_parser)
    _add_session_argument(ack_parser)
    ack_parser.add_argument(
        "--snooze",
        action="store_true",
        help="Also snooze until tomorrow",
    )
    ack_parser.set_defaults(func=cmd_ack)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.add_argument(
        "--language", "-l",
        choices=["zh", "en"],
        help="Default language for new configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except ExpiryNotifierError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
