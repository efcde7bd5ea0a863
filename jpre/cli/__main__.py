"""Command line interface for jpre."""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console
from rich.markup import escape

from jpre.app import DEFAULT_TARGET, UPDATE_ALL, Jpre
from jpre.cli.progress import DownloadProgress
from jpre.core.errors import JpreError, NotInstalledError
from jpre.core.java_version import PreReleaseKind, parse_key
from jpre.version import __version__

logger = logging.getLogger("jpre.cli")

EXIT_OK = 0
EXIT_USER_ERROR = 1
EXIT_INTERNAL_ERROR = 2

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

err_console = Console(stderr=True, highlight=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jpre",
        description="Install JDKs and switch between them per shell session.",
    )
    parser.add_argument("--version", action="version", version=f"jpre {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v for info, -vv for debug)",
    )

    sub = parser.add_subparsers(dest="command")

    use = sub.add_parser("use", help="Use a JDK in the current context")
    use.add_argument("jdk", type=str, help="Version key (e.g. 17, 21-ea) or 'default'")
    use.set_defaults(func=cmd_use)

    current = sub.add_parser("current", help="Print the full version of the JDK used in this context")
    current.set_defaults(func=cmd_current)

    java_home = sub.add_parser("java-home", help="Reset this context to the default JDK and print the JAVA_HOME path")
    java_home.set_defaults(func=cmd_java_home)

    context_id = sub.add_parser("context-id", help="Print the id of the current context")
    context_id.set_defaults(func=cmd_context_id)

    install = sub.add_parser("install", help="Download and install a JDK, replacing any existing install")
    install.add_argument("jdk", type=str, help="Version key to install")
    install.set_defaults(func=cmd_install)

    list_installed = sub.add_parser("list-installed", help="List installed JDKs")
    list_installed.set_defaults(func=cmd_list_installed)

    list_distributions = sub.add_parser("list-distributions", help="List distributions known to the package index")
    list_distributions.add_argument("--synonyms", action="store_true", help="Show synonyms of each distribution")
    list_distributions.set_defaults(func=cmd_list_distributions)

    list_versions = sub.add_parser("list-versions", help="List version keys available for a distribution")
    list_versions.add_argument(
        "distribution",
        nargs="?",
        default=None,
        help="Distribution to list. Defaults to the first configured distribution.",
    )
    list_versions.add_argument("--pre-release", action="store_true", help="Include pre-release versions")
    list_versions.add_argument(
        "--no-ga",
        dest="ga",
        action="store_false",
        help="Hide general availability versions",
    )
    list_versions.set_defaults(func=cmd_list_versions)

    remove = sub.add_parser("remove", help="Remove an installed JDK")
    remove.add_argument("jdk", type=str, help="Version key to remove")
    remove.set_defaults(func=cmd_remove)

    set_default = sub.add_parser("set-default", help="Set the default JDK, installing it if needed")
    set_default.add_argument("jdk", type=str, help="Version key")
    set_default.set_defaults(func=cmd_set_default)

    set_distributions = sub.add_parser("set-distributions", help="Set the distributions to try, in priority order")
    set_distributions.add_argument("distributions", nargs="+", help="Distribution names or synonyms")
    set_distributions.set_defaults(func=cmd_set_distributions)

    update = sub.add_parser("update", help="Update installed JDKs")
    update.add_argument("target", type=str, help="Version key, 'all', or 'default'")
    update.add_argument("-c", "--check", action="store_true", help="Only check, do not download updates")
    update.add_argument("-f", "--force", action="store_true", help="Reinstall even when already up to date")
    update.set_defaults(func=cmd_update)

    return parser


def _open_app(progress: DownloadProgress | None = None) -> Jpre:
    return Jpre.from_environment(progress=progress)


def cmd_use(args: argparse.Namespace) -> int:
    progress = DownloadProgress(err_console)
    with _open_app(progress) as app:
        key = app.resolve_target(args.jdk)
        try:
            app.bind_context(key)
        finally:
            progress.stop()
    err_console.print(f"Using JDK [cyan]{key}[/cyan]")
    return EXIT_OK


def cmd_current(args: argparse.Namespace) -> int:
    _ = args
    with _open_app() as app:
        version = app.current_context()
    print(version if version is not None else "<unknown>")
    return EXIT_OK


def cmd_java_home(args: argparse.Namespace) -> int:
    _ = args
    progress = DownloadProgress(err_console)
    with _open_app(progress) as app:
        try:
            path = app.java_home()
        finally:
            progress.stop()
    print(path)
    return EXIT_OK


def cmd_context_id(args: argparse.Namespace) -> int:
    _ = args
    with _open_app() as app:
        print(app.context.context_id)
    return EXIT_OK


def cmd_install(args: argparse.Namespace) -> int:
    key = parse_key(args.jdk)
    progress = DownloadProgress(err_console)
    with _open_app(progress) as app:
        try:
            path = app.install(key)
        finally:
            progress.stop()
        version = app.get_full_version(key)
    err_console.print(f"Installed JDK [cyan]{key}[/cyan] ({version}) at {path}")
    return EXIT_OK


def cmd_list_installed(args: argparse.Namespace) -> int:
    _ = args
    with _open_app() as app:
        installed = app.list_installed()
        default = app.config.default_key
        current = app.context.current_key()
        if not installed:
            err_console.print("No JDKs installed.")
            return EXIT_OK
        for key in installed:
            labels = []
            if key == default:
                labels.append("default")
            if key == current:
                labels.append("current")
            suffix = f" ({', '.join(labels)})" if labels else ""
            print(f"- {key}{suffix}")
    return EXIT_OK


def cmd_list_distributions(args: argparse.Namespace) -> int:
    err_console.print("Listing distributions...")
    with _open_app() as app:
        distributions = app.list_distributions()
    for distribution in distributions:
        print(f"- {distribution.name}")
        if not args.synonyms:
            continue
        print("  Synonyms:")
        for synonym in distribution.synonyms:
            print(f"  - {synonym}")
    if not args.synonyms:
        err_console.print("\n(Use --synonyms to show synonyms)")
    return EXIT_OK


def cmd_list_versions(args: argparse.Namespace) -> int:
    with _open_app() as app:
        distribution = args.distribution or app.config.distributions[0]
        err_console.print(f"Listing versions for distribution '{distribution}'...")
        keys = app.list_version_keys(distribution)
    for key in keys:
        is_ga = key.pre_release.kind == PreReleaseKind.NONE
        if is_ga and not args.ga:
            continue
        if not is_ga and not args.pre_release:
            continue
        print(f"- {key}")
    return EXIT_OK


def cmd_remove(args: argparse.Namespace) -> int:
    key = parse_key(args.jdk)
    with _open_app() as app:
        app.remove(key)
    err_console.print(f"Removed JDK [cyan]{key}[/cyan]")
    return EXIT_OK


def cmd_set_default(args: argparse.Namespace) -> int:
    key = parse_key(args.jdk)
    progress = DownloadProgress(err_console)
    with _open_app(progress) as app:
        err_console.print(f"Validating JDK '{key}'...")
        try:
            changed = app.set_default(key)
        finally:
            progress.stop()
    if changed:
        err_console.print(f"Default JDK set to '[cyan]{key}[/cyan]'")
    else:
        err_console.print(f"Default JDK already set to '[cyan]{key}[/cyan]'")
    return EXIT_OK


def cmd_set_distributions(args: argparse.Namespace) -> int:
    names = list(args.distributions)
    joined = ", ".join(names)
    with _open_app() as app:
        err_console.print(f"Validating distribution(s) '{joined}'...")
        changed = app.set_distributions(names)
    if changed:
        err_console.print(f"Distribution(s) set to '{joined}'")
    else:
        err_console.print(f"Distribution(s) already set to '{joined}'")
    return EXIT_OK


def cmd_update(args: argparse.Namespace) -> int:
    progress = DownloadProgress(err_console)
    failed = 0
    with _open_app(progress) as app:
        targets = app.update_targets(args.target)
        if not targets and args.target not in {UPDATE_ALL, DEFAULT_TARGET}:
            raise NotInstalledError(parse_key(args.target))
        if not targets and args.target == DEFAULT_TARGET:
            raise NotInstalledError(app.default_key())

        err_console.print("Checking updates for installed JDKs...")
        for key in targets:
            err_console.print(f"Checking for updates for [cyan]{key}[/cyan]")
            try:
                check = app.check_update(key)
            except JpreError as exc:
                logger.warning("Failed to check updates for %s: %s", key, exc)
                failed += 1
                continue

            if check.update_available and check.installed is not None:
                err_console.print(f"  New version available: [cyan]{check.latest}[/cyan]")
            elif check.installed is None:
                err_console.print(f"  No full version recorded for {key}, reinstalling")
            else:
                err_console.print(f"  Already up-to-date: [cyan]{check.installed}[/cyan]")
                if args.force:
                    err_console.print("  Forcing re-install...")

            if args.check or not (check.update_available or args.force):
                continue
            try:
                app.install(key)
            except JpreError as exc:
                logger.warning("Failed to update JDK %s: %s", key, exc)
                failed += 1
            finally:
                progress.stop()
    return EXIT_USER_ERROR if failed else EXIT_OK


def configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbosity >= 2 else logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    argv = list(argv) if argv is not None else sys.argv[1:]

    parser = build_parser()
    if not argv:
        parser.print_help()
        return EXIT_OK

    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_USER_ERROR

    try:
        return args.func(args)
    except JpreError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        return EXIT_USER_ERROR if exc.user_correctable else EXIT_INTERNAL_ERROR


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
