#!/usr/bin/env python3
"""
HEALCTL CLI
-----------
Command-line front end for driving heal sequences on a MinIO-compatible
cluster and for reading the background healer's status.

    healctl heal myminio                       background heal status
    healctl heal -r --scan deep myminio/b/dir/ follow a deep recursive heal
    healctl heal --force-stop myminio/b/dir/   stop the running sequence

Author: HealCtl Team
Date: 2026-10-18
"""

import sys
import difflib
import logging
import argparse
from typing import Any, Callable, Dict, List, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from healctl.client.admin import AdminClient
from healctl.core.config import AliasConfig, HealCtlConfig, load_config
from healctl.core.errors import ConfigError, ErrorKind, HealError
from healctl.core.models import HealOptions, ScanMode
from healctl.core.scope import parse_target
from healctl.healing.controller import SequenceController
from healctl.cli.formatter import ProgressRenderer

VERSION = "healctl v1.0.0"
COMMANDS = ("heal",)

HEAL_EPILOG = """\
scan modes:
  normal (default)  heal objects which are missing on one or more drives
  deep              also heal objects with silent data corruption

examples:
  1. Show the background heal status of the cluster 'myminio'
     $ healctl heal myminio

  2. Heal 'testbucket' on 'myminio'
     $ healctl heal myminio/testbucket/

  3. Heal all objects under the 'dir' prefix
     $ healctl heal --recursive myminio/testbucket/dir/

  4. Inspect object health under 'dir' without healing anything
     $ healctl heal --recursive --dry-run myminio/testbucket/dir/

  5. Kill the running heal sequence for 'dir' and start a new one
     $ healctl heal --force-start myminio/testbucket/dir/

  6. Kill the running heal sequence for 'dir'
     $ healctl heal --force-stop myminio/testbucket/dir/
"""

ClientFactory = Callable[[AliasConfig, HealCtlConfig], Any]


class InvocationParser(argparse.ArgumentParser):
    """argparse that shows help and exits 1 on bad input instead of 2."""

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(1, f"\n{self.prog}: error: {message}\n")


def suggest_commands(name: str, commands: Sequence[str] = COMMANDS) -> List[str]:
    """Closest known command names to a mistyped one."""
    return difflib.get_close_matches(name, list(commands), n=3, cutoff=0.5)


def default_client_factory(alias: AliasConfig, config: HealCtlConfig) -> AdminClient:
    return AdminClient.from_alias(alias, timeout=config.timeout, poll_interval=config.poll_interval)


def setup_logging(debug: bool):
    """Routes healctl.* loggers through rich on stderr."""
    logger = logging.getLogger("healctl")
    logger.handlers.clear()
    handler = RichHandler(console=Console(stderr=True), show_path=False, show_time=debug)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


class HealCtlCLI:
    """
    Translates command-line input into a SequenceController run and maps the
    outcome onto output and an exit status.
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None,
                 environ: Optional[Dict[str, str]] = None, console: Optional[Console] = None):
        self.client_factory = client_factory or default_client_factory
        self.environ = environ
        self.console = console
        self.parser = InvocationParser(
            prog="healctl",
            description="healctl - start, follow and stop heal sequences on an object-storage cluster",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.heal_parser: argparse.ArgumentParser = None
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("-v", "--version", action="version", version=VERSION)
        self.parser.add_argument("--json", action="store_true", help="Print machine-readable JSON output")
        self.parser.add_argument("--debug", action="store_true", help="Enable debug logging")
        self.parser.add_argument("--no-color", action="store_true", help="Disable colored output")
        self.parser.add_argument("--config-dir", metavar="DIR", help="Directory holding config.yaml")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        heal = subparsers.add_parser(
            "heal",
            help="Heal buckets and objects on a cluster",
            description="Heal buckets and objects on a cluster.",
            usage="healctl heal [FLAGS] TARGET",
            epilog=HEAL_EPILOG,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        # Validated by hand so a wrong count shows help and exits 1
        heal.add_argument("target", nargs="*", metavar="TARGET", help="alias[/bucket[/prefix]]")
        heal.add_argument("--scan", default="normal", help="Select the healing scan mode (normal/deep)")
        heal.add_argument("-r", "--recursive", action="store_true", help="Heal recursively")
        heal.add_argument("-n", "--dry-run", action="store_true", help="Only inspect data, but do not mutate")
        heal.add_argument("-f", "--force-start", action="store_true", help="Force start a new heal sequence")
        heal.add_argument("-s", "--force-stop", action="store_true", help="Force stop a running heal sequence")
        heal.add_argument("--remove", action="store_true", help="Remove dangling objects in heal sequence")
        self.heal_parser = heal

    @staticmethod
    def _first_command(argv: Sequence[str]) -> Optional[str]:
        skip_value = False
        for token in argv:
            if skip_value:
                skip_value = False
                continue
            if token == "--config-dir":
                skip_value = True
                continue
            if token.startswith("-"):
                continue
            return token
        return None

    def _syntax_error(self) -> int:
        self.heal_parser.print_help(sys.stderr)
        return 1

    def run(self, argv: Sequence[str]) -> int:
        """Primary routing entry point. Returns the process exit status."""
        argv = list(argv)
        if not argv:
            self.parser.print_help()
            return 0

        command = self._first_command(argv)
        if command is not None and command not in COMMANDS:
            print(f"healctl: '{command}' is not a healctl command.", file=sys.stderr)
            matches = suggest_commands(command)
            if matches:
                print("Did you mean one of these?", file=sys.stderr)
                for match in matches:
                    print(f"    {match}", file=sys.stderr)
            return 1

        args = self.parser.parse_args(argv)
        if args.command != "heal":
            self.parser.print_help()
            return 0
        return self._run_heal(args)

    def _run_heal(self, args: argparse.Namespace) -> int:
        setup_logging(args.debug)
        log = logging.getLogger("healctl.cli")

        # Syntax checks happen before any network call
        if len(args.target) != 1:
            return self._syntax_error()
        try:
            scan_mode = ScanMode.parse(args.scan)
        except ValueError:
            return self._syntax_error()

        locator = args.target[0].replace("\\", "/")
        try:
            alias, scope = parse_target(locator)
        except ValueError:
            return self._syntax_error()

        console = self.console or Console(no_color=args.no_color)
        renderer = ProgressRenderer(console=console, json_mode=args.json)
        options = HealOptions(
            scan_mode=scan_mode,
            recursive=args.recursive,
            dry_run=args.dry_run,
            remove=args.remove,
        )

        try:
            config = load_config(args.config_dir, self.environ)
            alias_config = config.resolve(alias, self.environ)
            client = self.client_factory(alias_config, config)
        except ConfigError as e:
            error = HealError(ErrorKind.TRANSPORT, "Cannot initialize admin client.", (str(e),))
            renderer.render_error(error.trace(locator))
            return 1

        log.debug(f"Heal {locator}: scope={scope} options={options}")
        with client:
            controller = SequenceController(client, on_progress=renderer.update)
            with renderer.live(locator):
                outcome = controller.run(
                    scope, options,
                    force_start=args.force_start,
                    force_stop=args.force_stop,
                    target=locator,
                )

        renderer.render(outcome)
        return 1 if outcome.tag == "failed" else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Application entry point with interrupt handling."""
    try:
        return HealCtlCLI().run(sys.argv[1:] if argv is None else argv)
    except KeyboardInterrupt:
        Console(stderr=True).print("\n[bold red]Terminated by user.[/bold red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
