import argparse
import getpass
import logging
import os
import sys
from typing import Optional, List

from .core.batch_processing import discover_dumps, run_batch
from .core.dump_provider import DumpReaderType, create_dump_reader
from .core.errors import (
    AuthenticationFailed, ConfigurationInvalid, ExitStatus, ProjectNotFound, TrackerUnavailable
)
from .report.console import ConsoleReporter
from .tracker.login import login
from .tracker.redmine_client import authenticate
from .tracker.router import TicketContext, TicketRouter
from .utils.config import (
    ConfigManager, Configuration, StackwalkSettings,
    configuration_from_arguments, load_configuration, save_configuration
)
from .utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)

API_KEY_ENV = "REDMINE_API_KEY"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Classify crash dumps by call stack and route them to their owners")

    source = parser.add_argument_group("dump source")
    source.add_argument("--config", help="JSON configuration file (replaces the options below)")
    source.add_argument("--dump-file", help="Single dump to analyze")
    source.add_argument("--dumps-folder", help="Folder containing dumps")
    source.add_argument("--recursive", action="store_true", help="Search the dumps folder recursively")
    source.add_argument("--pattern", help="Dump file pattern (default: *.dmp)")

    owners = parser.add_argument_group("ownership")
    owners.add_argument("--filter", dest="filters", action="append", default=[], metavar="SPEC",
                        help="FIELD:KIND:VALUE[=>OWNER], FIELD is module/function/frame, "
                             "KIND is exact/substring/pattern. Repeat in priority order.")
    owners.add_argument("--ignore-case", action="store_true", help="Case-insensitive filters")
    owners.add_argument("--default-owner", help="Owner for dumps no filter matches")

    tracker = parser.add_argument_group("tickets")
    tracker.add_argument("--open-tickets", action="store_true", help="Open a Redmine ticket per dump")
    tracker.add_argument("--tracker-url", help="Redmine base URL")
    tracker.add_argument("--project", help="Redmine project identifier")
    tracker.add_argument("--max-login-attempts", type=int, default=None,
                         help="Stop asking for credentials after this many failures")

    reader = parser.add_argument_group("dump reader")
    reader.add_argument("--stackwalk", help="minidump_stackwalk executable (default: on PATH)")
    reader.add_argument("--symbols", action="append", default=[], help="Symbol directory (repeatable)")
    reader.add_argument("--stackwalk-timeout", type=int, help="Seconds per dump (default: 120)")

    parser.add_argument("--save-config", metavar="FILE", help="Write the configuration to FILE and exit")
    parser.add_argument("--report", metavar="FILE", help="Write a JSON triage report")
    parser.add_argument("--no-pause", action="store_true",
                        help="Do not wait for <Enter> between dumps when no tickets are opened")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    return parser


CONFIG_FILE_OPTIONS = (
    ("dump_file", "--dump-file"),
    ("dumps_folder", "--dumps-folder"),
    ("recursive", "--recursive"),
    ("pattern", "--pattern"),
    ("filters", "--filter"),
    ("ignore_case", "--ignore-case"),
    ("default_owner", "--default-owner"),
    ("open_tickets", "--open-tickets"),
    ("tracker_url", "--tracker-url"),
    ("project", "--project"),
    ("stackwalk", "--stackwalk"),
    ("symbols", "--symbols"),
    ("stackwalk_timeout", "--stackwalk-timeout"),
)


def _option_given(value) -> bool:
    # 0 is a real value here, so no truthiness test
    return value is not None and value is not False and value != []


def build_configuration(args) -> Configuration:
    """Configuration from --config, or from the command inputs."""
    if args.config:
        given = [flag for dest, flag in CONFIG_FILE_OPTIONS if _option_given(getattr(args, dest))]
        if given:
            raise ConfigurationInvalid(f"--config cannot be combined with {', '.join(given)}")
        return load_configuration(os.path.abspath(args.config))

    defaults = StackwalkSettings()

    return configuration_from_arguments(
        dump_file=args.dump_file,
        dumps_folder=args.dumps_folder,
        recursive_search=args.recursive,
        dump_pattern=args.pattern,
        filters=args.filters,
        default_owner=args.default_owner,
        ignore_case=args.ignore_case,
        tracker_url=args.tracker_url,
        project=args.project,
        open_tickets=args.open_tickets,
        stackwalk=StackwalkSettings(
            executable=args.stackwalk or defaults.executable,
            symbol_paths=tuple(os.path.abspath(p) for p in args.symbols),
            timeout=defaults.timeout if args.stackwalk_timeout is None else args.stackwalk_timeout
        )
    )


def check_report_path(path: str):
    """The report is written after the batch, so its directory must exist up front."""
    directory = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(directory):
        raise ConfigurationInvalid(f"Report directory does not exist: {directory}")


def prompt_credentials(settings: ConfigManager, tracker_url: str):
    """Ask for Redmine credentials, offering the last user name as default."""
    last_user = settings.get_last_tracker_user(tracker_url)
    label = f"Redmine Username [{last_user}]: " if last_user else "Redmine Username: "
    user = input(label).strip() or (last_user or "")
    password = getpass.getpass("Redmine password: ")
    return user, password


def open_tracker_session(configuration: Configuration, settings: ConfigManager,
                         max_attempts: Optional[int]):
    """Authenticate, retrying interactively. Raises AuthenticationFailed on give-up."""
    api_key = os.environ.get(API_KEY_ENV)
    if api_key:
        return authenticate(configuration.tracker_url, api_key=api_key)

    entered = {}

    def prompt():
        user, password = prompt_credentials(settings, configuration.tracker_url)
        entered["user"] = user
        return user, password

    def on_failure(result):
        print("The credentials you supplied were wrong...", file=sys.stderr)
        print(f"({result.detail})\n", file=sys.stderr)

    session = login(configuration.tracker_url, prompt,
                    authenticator=authenticate,
                    max_attempts=max_attempts, on_failure=on_failure)
    if entered.get("user"):
        settings.set_last_tracker_user(configuration.tracker_url, entered["user"])
    return session


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = ConfigManager()
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO,
                  log_to_file=not args.no_log_file, config_manager=settings)

    try:
        configuration = build_configuration(args)
        if args.save_config:
            save_configuration(configuration, args.save_config)
            return ExitStatus.SUCCESS
        dumps = discover_dumps(configuration)
        if args.report:
            check_report_path(args.report)

        reader = create_dump_reader(
            DumpReaderType.STACKWALK,
            executable=configuration.stackwalk.executable,
            symbol_paths=configuration.stackwalk.symbol_paths,
            timeout=configuration.stackwalk.timeout
        )
        if not reader.is_available():
            raise ConfigurationInvalid(f"Dump reader {configuration.stackwalk.executable} not found")
    except ConfigurationInvalid as e:
        print(f"The options are invalid: {e}", file=sys.stderr)
        return ExitStatus.CONFIGURATION_INVALID

    reporter = ConsoleReporter()
    router = None
    session = None

    if configuration.open_tickets:
        try:
            session = open_tracker_session(configuration, settings, args.max_login_attempts)
        except (AuthenticationFailed, TrackerUnavailable, EOFError, KeyboardInterrupt) as e:
            print(f"\nCould not log in to {configuration.tracker_url}: {e}", file=sys.stderr)
            return ExitStatus.CREDENTIALS_INVALID

        try:
            context = TicketContext.create(session, configuration.project)
        except (ProjectNotFound, TrackerUnavailable) as e:
            print(f"The project details you supplied were wrong... ({e})", file=sys.stderr)
            session.close()
            return ExitStatus.PROJECT_INVALID

        router = TicketRouter(context, configuration.ownership,
                              on_unresolved=reporter.assignee_unresolved)

    try:
        return run_batch(dumps, configuration, reader, observer=reporter, router=router,
                         pause_between_dumps=not args.no_pause, report_path=args.report)
    finally:
        if session is not None:
            session.close()


if __name__ == "__main__":
    sys.exit(main())
