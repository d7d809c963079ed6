from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .__version import __version__
from ._logging import get_logger, setup_colored_logging

logger = get_logger(__name__)

_DESCRIPTION = """\
env-doctor: static analysis of environment variables

Cross-checks .env declarations against JavaScript/TypeScript source code:
• Missing, unused and mistyped variables
• Secrets committed with real values
• Drift between .env and its template
• Consistency across development, staging, production and test"""


def main(argv: list[str] | None = None):
    """Main entry point for the command line interface."""
    parser = argparse.ArgumentParser(
        description=_DESCRIPTION,
        prog="env-doctor",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: %(default)s)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Check subcommand
    check_parser = subparsers.add_parser(
        "check",
        help="Analyze a project and report environment variable issues",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    _add_project_arguments(check_parser)
    check_parser.add_argument(
        "-e", "--env", type=str, help="Target environment (development, production, test, ...)"
    )
    check_parser.add_argument(
        "--format",
        choices=["console", "json"],
        default="console",
        help="Output format (default: %(default)s)",
    )
    check_parser.add_argument(
        "--strict", action="store_true", help="Treat warnings as errors for the exit code"
    )
    check_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show every issue and parse errors"
    )

    # Matrix subcommand
    matrix_parser = subparsers.add_parser(
        "matrix",
        help="Compare variables across environments",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    _add_project_arguments(matrix_parser)
    matrix_parser.add_argument(
        "--env",
        dest="environments",
        nargs="+",
        metavar="NAME",
        help="Only compare these environments",
    )
    matrix_parser.add_argument(
        "--format",
        choices=["console", "json"],
        default="console",
        help="Output format (default: %(default)s)",
    )

    # Sync subcommand
    sync_parser = subparsers.add_parser(
        "sync",
        help="Generate a template file from declared and used variables",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    _add_project_arguments(sync_parser)
    sync_parser.add_argument(
        "--write", action="store_true", help="Write the template instead of printing it"
    )
    sync_parser.add_argument(
        "--output", type=str, help="Template path to write (default: the configured template)"
    )

    # Init subcommand
    init_parser = subparsers.add_parser(
        "init",
        help="Create a starter env-doctor.json",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    init_parser.add_argument("directory", nargs="?", default=".", help="Project directory")
    init_parser.add_argument("-f", "--force", action="store_true", help="Overwrite existing file")

    # Server subcommand
    server_parser = subparsers.add_parser(
        "server",
        help="Start the language server",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    server_parser.add_argument("--tcp", action="store_true", help="Use TCP instead of stdio")
    server_parser.add_argument(
        "--port", type=int, default=8080, help="TCP port to listen on (default: %(default)s)"
    )
    server_parser.add_argument("--stdio", action="store_true", help="Use stdio (default)")

    args = parser.parse_args(argv)

    # Require explicit subcommand
    if args.command is None:
        parser.error(
            "A subcommand is required. Use 'env-doctor check' to analyze a project.\n"
            "See 'env-doctor --help' for available commands."
        )

    log_level = getattr(logging, args.log_level)
    setup_colored_logging(level=log_level)

    if args.command == "server":
        if args.tcp and args.stdio:
            parser.error("--tcp and --stdio are mutually exclusive")

        # Import server only when actually needed
        from .server import create_server

        server = create_server()
        if args.tcp:
            logger.info(f"Starting env-doctor language server ({__version__}) on port {args.port}")
            server.start_tcp("localhost", args.port)
        else:
            logger.info(f"Starting env-doctor language server ({__version__}) on stdio")
            server.start_io()
        return

    if args.command == "init":
        sys.exit(_run_init(Path(args.directory), args.force))

    root = Path(args.directory)
    if not root.is_dir():
        parser.error(f"Not a directory: {args.directory}")

    if args.command == "check":
        sys.exit(_run_check(args))
    elif args.command == "matrix":
        sys.exit(_run_matrix(args))
    elif args.command == "sync":
        sys.exit(_run_sync(args))


def _add_project_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument("directory", nargs="?", default=".", help="Project directory")
    subparser.add_argument("-c", "--config", type=str, help="Path to config file")


def _load(args: argparse.Namespace):
    from .config import load_config, validate_config

    config, config_file = load_config(args.config, args.directory)
    if config_file is not None:
        logger.info(f"Using config {config_file}")
    for problem in validate_config(config):
        logger.warning(problem)
    return config


def _run_check(args: argparse.Namespace) -> int:
    """Run the check command; returns the exit code."""
    from .analyzer import EnvAnalyzer
    from .config import get_env_specific_config
    from .reporters import report_to_console, report_to_json

    config = _load(args)
    if args.env:
        config = get_env_specific_config(config, args.env)
    if args.strict:
        config.strict = True

    result = EnvAnalyzer(config).analyze()

    if args.format == "json":
        print(report_to_json(result))
    else:
        report_to_console(result, config.root, verbose=args.verbose)

    failed = result.stats.error_count > 0
    if config.strict:
        failed = failed or result.stats.warning_count > 0
    return 1 if failed else 0


def _run_matrix(args: argparse.Namespace) -> int:
    from .matrix import analyze_matrix
    from .reporters import report_matrix_to_console, report_matrix_to_json

    config = _load(args)
    try:
        result = analyze_matrix(config, environments=args.environments)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(report_matrix_to_json(result))
    else:
        report_matrix_to_console(result)

    return 1 if result.summary.error_count > 0 else 0


def _run_sync(args: argparse.Namespace) -> int:
    from ._analyzer import DEFAULT_TEMPLATE_FILE, generate_template
    from .analyzer import EnvAnalyzer
    from .constants import DYNAMIC_VARIABLE
    from .models import DeclaredVariable

    config = _load(args)
    result = EnvAnalyzer(config).analyze()

    variables: dict[str, DeclaredVariable] = {}
    for variable in result.declared:
        variables.setdefault(variable.name, variable)
    for usage in result.usages:
        if usage.name != DYNAMIC_VARIABLE and usage.name not in variables:
            variables[usage.name] = DeclaredVariable(usage.name, "", usage.line, usage.file)

    template = generate_template(variables.values())

    if not (args.write or args.output):
        print(template)
        return 0

    output = Path(config.root) / (args.output or config.template_file or DEFAULT_TEMPLATE_FILE)
    try:
        output.write_text(template, encoding="utf-8")
    except OSError as e:
        print(f"Error writing {output}: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {len(variables)} variable(s) to {output}")
    return 0


def _run_init(directory: Path, force: bool) -> int:
    from .config import generate_config_template

    if not directory.is_dir():
        print(f"Error: Not a directory: {directory}", file=sys.stderr)
        return 1

    config_path = directory / "env-doctor.json"
    if config_path.exists() and not force:
        print(f"Error: {config_path} already exists. Use --force to overwrite.", file=sys.stderr)
        return 1

    config_path.write_text(generate_config_template(), encoding="utf-8")
    print(f"Created {config_path}")
    return 0


if __name__ == "__main__":
    main()
