"""
Command-Line Interface (CLI) for bulk API export and import.

This module drives WSO2 API Manager migrations from the terminal. It is built
using Python's `argparse` module and wraps the `apictl` adapter, the filter
evaluator and the batch runner. Every matching API is processed with exactly
one apictl call; failures are counted and reported, never retried.

Usage:
    python -m apim_bulk_app.cli [--config PATH] [--project-root DIR] <command> [options]

Example:
    python -m apim_bulk_app.cli export --filter 'Payment*' --dry-run
    python -m apim_bulk_app.cli export -e production --provider admin --status PUBLISHED
    python -m apim_bulk_app.cli import -s dev -e qa --api PizzaShackAPI:1.0.0
    python -m apim_bulk_app.cli clean-logs --yes
"""

import argparse
import json
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from apim_bulk_app import apictl
from apim_bulk_app import batch_core as core
from apim_bulk_app import config as cfg
from apim_bulk_app import filters
from apim_bulk_app import run_log
from apim_bulk_app.errors import BulkError, PreflightError


# Handlers take plain values and may raise BulkError; main() maps that to
# "Error: ..." output and exit status 1.


def _fail(msg: str, json_output: bool, code: int = 1) -> None:
    if json_output:
        print(json.dumps({"error": msg, "code": code}))
    else:
        print(f"Error: {msg}")
    sys.exit(code)


def _log_header(log: run_log.RunLog, title: str, details: List[str]) -> None:
    log.message(f"=== WSO2 API Manager - {title} ===")
    log.message(f"Started at: {datetime.now():%a %b %d %H:%M:%S %Y}")
    for line in details:
        log.message(line)
    log.message("")


def _log_filters(log: run_log.RunLog, filter_set: filters.FilterSet) -> None:
    if filter_set.is_empty:
        return
    log.message("Active filters:")
    for line in filter_set.describe():
        log.message(f"  {line}")
    log.message("")


def _skip_recorder(log: run_log.RunLog):
    """Notes filtered-out entities in the log file only."""

    def _on_event(entity: filters.Entity, result: str) -> None:
        if result == core.SKIPPED:
            log.append_raw(f"Skipped (filtered): {entity.label}")

    return _on_event


def _report_preview(
    log: run_log.RunLog,
    preview: core.BatchPreview,
    verb: str,
    json_output: bool,
) -> None:
    """Prints the dry-run listing and summary; never touches apictl or disk."""
    log.message("")
    log.message(f"APIs that would be {verb}ed:")
    for entity in preview.would_process:
        line = f"  + {entity.label}"
        if entity.provider:
            line += f" by {entity.provider}"
        if entity.status:
            line += f" [{entity.status}]"
        log.message(line)
    log.message("")
    log.message("=== Dry-Run Summary ===")
    log.message(f"Would {verb}: {preview.match_count} APIs")
    if preview.skip_count:
        log.message(f"Would skip (filtered): {preview.skip_count} APIs")
    log.message("")
    log.message(f"To perform the actual {verb}, run without --dry-run")
    if json_output:
        print(
            json.dumps(
                {
                    "dry_run": True,
                    "would_process": [
                        {"name": e.name, "version": e.version, "provider": e.provider}
                        for e in preview.would_process
                    ],
                    "would_process_count": preview.match_count,
                    "would_skip_count": preview.skip_count,
                }
            )
        )


def _report_summary(
    log: run_log.RunLog,
    result: core.BatchResult,
    verb: str,
    json_output: bool,
    details: List[str],
) -> core.Outcome:
    outcome = core.summarize(result)
    title = verb.capitalize()
    log.message("")
    log.message(f"=== {title} Summary ===")
    log.message(f"Successfully {verb}ed: {result.succeeded} APIs")
    if result.failed:
        log.message(f"Failed {verb}s: {result.failed} APIs")
    if result.skipped:
        log.message(f"Skipped (filtered): {result.skipped} APIs")
    for line in details:
        log.message(line)
    log.message(f"Log file: {log.path}")
    log.message(f"Completed at: {datetime.now():%a %b %d %H:%M:%S %Y}")

    if outcome is core.Outcome.NO_MATCH:
        log.message(f"No APIs were {verb}ed. Check your filters.")
    elif outcome is core.Outcome.SUCCESS:
        log.message(f"All matching APIs {verb}ed successfully!")
    else:
        log.message(f"Some APIs failed to {verb}. Check the log for details.")

    if json_output:
        out: Dict[str, Any] = result.to_dict()
        out["outcome"] = outcome.value
        out["log_file"] = str(log.path) if log.path else None
        print(json.dumps(out))
    return outcome


def handle_export(
    project_root: str,
    config: Dict[str, Any],
    environment: str = "dev",
    directory: Optional[str] = None,
    name_patterns: Optional[List[str]] = None,
    selectors: Optional[List[str]] = None,
    provider: Optional[str] = None,
    status: Optional[str] = None,
    dry_run: bool = False,
    json_output: bool = False,
    quiet: bool = False,
) -> None:
    """
    Exports every API in an environment that matches the filters.

    Args:
        project_root: Directory that relative config paths resolve against.
        config: Loaded configuration (see config.load_config).
        environment: apictl environment to export from.
        directory: Export directory; defaults to the configured export_dir.
        dry_run: Only list what would be exported. No log file is created.
    """
    filter_set = filters.build_filter_set(name_patterns, selectors, provider, status)
    command = apictl.resolve_command(config, environment)
    export_dir = (
        cfg.resolve_path(project_root, directory)
        if directory
        else cfg.resolve_path(project_root, config["export_dir"])
    )
    echo = not (quiet or json_output)
    if dry_run:
        log = run_log.RunLog.preview(echo=echo)
    else:
        log = run_log.RunLog.create(
            cfg.resolve_path(project_root, config["logs_dir"]), "export", echo=echo
        )

    header = [f"Environment: {environment}"]
    if dry_run:
        _log_header(log, "DRY RUN MODE", header)
        log.message("Dry-run mode: No APIs will be exported")
    else:
        header.append(f"Export Directory: {export_dir}")
        _log_header(log, "Bulk API Export", header)

    try:
        apictl.check_installed(command)
        log.message(f"{command} found for environment {environment}")
        if not dry_run:
            if export_dir.is_dir():
                log.message(f"Export directory already exists: {export_dir}")
            else:
                os.makedirs(export_dir, exist_ok=True)
                log.message(f"Created export directory: {export_dir}")
        log.message(f"Checking environment: {environment} (using {command})")
        apictl.check_environment(command, environment)
        log.message(f"Successfully connected to environment: {environment}")
        _log_filters(log, filter_set)

        log.message("Fetching API list...")
        entities = apictl.list_apis(command, environment)
    except BulkError as e:
        log.append_raw(f"Error: {e}")
        raise
    log.message(f"Found {len(entities)} total APIs")

    if dry_run:
        _report_preview(log, core.preview_batch(entities, filter_set), "export", json_output)
        return

    if not apictl.set_export_directory(command, export_dir):
        log.message(f"Warning: could not set apictl export directory to {export_dir}")
    exporter = apictl.ApiExporter(command, environment, log)
    result = core.run_batch(
        entities, filter_set, exporter, on_event=_skip_recorder(log)
    )
    outcome = _report_summary(
        log, result, "export", json_output, [f"Export location: {export_dir}"]
    )
    sys.exit(outcome.exit_code)


def _archive_selector(raw: str) -> str:
    """Accepts the archive-style PizzaShackAPI_1.0.0 as PizzaShackAPI:1.0.0."""
    if ":" in raw:
        return raw
    name, sep, version = raw.rpartition("_")
    return f"{name}:{version}" if sep and name and version else raw


def handle_import(
    project_root: str,
    config: Dict[str, Any],
    source_env: str = "dev",
    environment: str = "qa",
    directory: Optional[str] = None,
    name_patterns: Optional[List[str]] = None,
    selectors: Optional[List[str]] = None,
    dry_run: bool = False,
    json_output: bool = False,
    quiet: bool = False,
) -> None:
    """
    Imports exported API archives into the target environment.

    Archives are discovered under `directory` (default
    <export_dir>/apis/<source_env>). A params.yaml under
    <params_dir>/<Name_Version>/ is passed to apictl when present.
    """
    filter_set = filters.build_filter_set(
        name_patterns, [_archive_selector(s) for s in selectors or ()]
    )
    command = apictl.resolve_command(config, environment)
    import_dir = (
        cfg.resolve_path(project_root, directory)
        if directory
        else apictl.default_import_dir(
            cfg.resolve_path(project_root, config["export_dir"]), source_env
        )
    )
    params_dir = cfg.resolve_path(project_root, config["params_dir"])
    echo = not (quiet or json_output)
    if dry_run:
        log = run_log.RunLog.preview(echo=echo)
    else:
        log = run_log.RunLog.create(
            cfg.resolve_path(project_root, config["logs_dir"]), "import", echo=echo
        )

    header = [
        f"Source Environment: {source_env}",
        f"Target Environment: {environment}",
        f"Import Directory: {import_dir}",
    ]
    _log_header(log, "DRY RUN MODE" if dry_run else "API Import", header)

    try:
        apictl.check_installed(command)
        log.message(f"{command} found for environment {environment}")
        if not import_dir.is_dir():
            raise PreflightError(
                f"Import directory does not exist: {import_dir}. "
                "Run the export first or specify a valid import directory."
            )
        log.message(f"Import directory found: {import_dir}")
        log.message(f"Checking environment: {environment} (using {command})")
        apictl.check_environment(command, environment)
        log.message(f"Successfully connected to environment: {environment}")
        _log_filters(log, filter_set)

        log.message("Getting list of API files...")
        entities = apictl.discover_archives(import_dir, log)
    except BulkError as e:
        log.append_raw(f"Error: {e}")
        raise
    log.message(f"Found {len(entities)} API files")
    log.message("")

    if dry_run:
        _report_preview(log, core.preview_batch(entities, filter_set), "import", json_output)
        return

    importer = apictl.ApiImporter(command, environment, log, params_dir=params_dir)
    result = core.run_batch(
        entities, filter_set, importer, on_event=_skip_recorder(log)
    )
    outcome = _report_summary(
        log,
        result,
        "import",
        json_output,
        [f"Source environment: {source_env}", f"Target environment: {environment}"],
    )
    sys.exit(outcome.exit_code)


def handle_clean_logs(
    project_root: str,
    config: Dict[str, Any],
    yes: bool = False,
    json_output: bool = False,
    quiet: bool = False,
) -> None:
    """Deletes all run logs after confirmation."""
    logs_dir = cfg.resolve_path(project_root, config["logs_dir"])
    logs = run_log.list_logs(logs_dir)
    if not logs:
        if json_output:
            print(json.dumps({"result": "cleaned", "removed": 0, "files": []}))
        elif not quiet:
            if logs_dir.is_dir():
                print(f"No log files found in: {logs_dir}")
            else:
                print(f"Logs directory does not exist: {logs_dir}")
        return
    if not yes:
        if json_output or not sys.stdin.isatty():
            _fail("--yes is required to clean logs non-interactively", json_output)
        print(f"Found {len(logs)} log file(s) in: {logs_dir}")
        try:
            resp = input("This will delete all log files. Continue? (y/N) ").strip().lower()
        except EOFError:
            resp = "n"
        if resp not in ("y", "yes"):
            if not quiet and not json_output:
                print("Cancelled")
            return
    removed = run_log.clean_logs(logs_dir)
    if json_output:
        print(json.dumps({"result": "cleaned", "removed": len(removed), "files": removed}))
    elif not quiet:
        print(f"Cleaned {len(removed)} log file(s)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bulk export and import of WSO2 API Manager APIs via apictl.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            "Filter behavior:\n"
            "  - No filters: every API is processed (default)\n"
            "  - With filters: only APIs matching ALL given filter kinds\n"
            "  - Repeated --filter: the name must match at least one pattern\n"
            "  - Repeated --api: every listed API is selected"
        ),
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help=f"YAML configuration file (default: <project-root>/{cfg.CONFIG_FILENAME}).",
    )
    parser.add_argument(
        "--project-root",
        default=".",
        metavar="DIR",
        help="Directory that relative paths resolve against (default: current directory).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce non-essential output.",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        help="The action to perform. Available commands are:",
    )

    # --- Export Command ---
    export_parser = subparsers.add_parser(
        "export", help="Export APIs from an environment."
    )
    export_parser.add_argument(
        "-e",
        "--environment",
        default="dev",
        help="Environment name (default: dev).",
    )
    export_parser.add_argument(
        "-d",
        "--directory",
        metavar="PATH",
        help="Export directory (default: export_dir from configuration).",
    )
    export_parser.add_argument(
        "-f",
        "--filter",
        action="append",
        metavar="PATTERN",
        help="Filter APIs by name pattern, * and ? wildcards (can be repeated).",
    )
    export_parser.add_argument(
        "-a",
        "--api",
        action="append",
        metavar="NAME:VERSION[:PROVIDER]",
        help="Export a specific API (can be repeated).",
    )
    export_parser.add_argument(
        "-p", "--provider", help="Filter APIs by provider name."
    )
    export_parser.add_argument(
        "-s",
        "--status",
        help="Filter APIs by lifecycle status (CREATED, PUBLISHED, DEPRECATED, ...).",
    )
    export_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview which APIs would be exported (no export, no log file).",
    )
    export_parser.add_argument(
        "--json",
        action="store_true",
        help="Output the summary in JSON.",
    )

    # --- Import Command ---
    import_parser = subparsers.add_parser(
        "import", help="Import exported API archives into an environment."
    )
    import_parser.add_argument(
        "-s",
        "--source-env",
        default="dev",
        help="Source environment name (default: dev).",
    )
    import_parser.add_argument(
        "-e",
        "--environment",
        default="qa",
        help="Target environment name (default: qa).",
    )
    import_parser.add_argument(
        "-d",
        "--directory",
        metavar="PATH",
        help="Import directory (default: <export_dir>/apis/<source-env>).",
    )
    import_parser.add_argument(
        "-f",
        "--filter",
        action="append",
        metavar="PATTERN",
        help="Filter archives by API name pattern (can be repeated).",
    )
    import_parser.add_argument(
        "-a",
        "--api",
        action="append",
        metavar="NAME:VERSION",
        help="Import a specific API as Name:Version or Name_Version (can be repeated).",
    )
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview which archives would be imported.",
    )
    import_parser.add_argument(
        "--json",
        action="store_true",
        help="Output the summary in JSON.",
    )

    # --- Clean Logs Command ---
    clean_parser = subparsers.add_parser(
        "clean-logs", help="Delete all log files from the logs directory."
    )
    clean_parser.add_argument(
        "--yes",
        action="store_true",
        help="Do not prompt for confirmation.",
    )
    clean_parser.add_argument(
        "--json",
        action="store_true",
        help="Output result in JSON.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    The main entry point for the command-line interface.

    Parses arguments, loads configuration and dispatches to the handler.
    """
    args = build_parser().parse_args(argv)

    try:
        config = cfg.load_config(cfg.resolve_config_path(args.project_root, args.config))
        if args.command == "export":
            handle_export(
                args.project_root,
                config,
                environment=args.environment,
                directory=args.directory,
                name_patterns=args.filter,
                selectors=args.api,
                provider=args.provider,
                status=args.status,
                dry_run=args.dry_run,
                json_output=args.json,
                quiet=args.quiet,
            )
        elif args.command == "import":
            handle_import(
                args.project_root,
                config,
                source_env=args.source_env,
                environment=args.environment,
                directory=args.directory,
                name_patterns=args.filter,
                selectors=args.api,
                dry_run=args.dry_run,
                json_output=args.json,
                quiet=args.quiet,
            )
        elif args.command == "clean-logs":
            handle_clean_logs(
                args.project_root,
                config,
                yes=args.yes,
                json_output=args.json,
                quiet=args.quiet,
            )
    except BulkError as e:
        _fail(str(e), getattr(args, "json", False))


if __name__ == "__main__":
    main()
