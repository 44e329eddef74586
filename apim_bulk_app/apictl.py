"""
Adapter around the WSO2 `apictl` command-line tool.

All communication with API Manager goes through `apictl` subprocesses. This
module resolves which apictl binary serves an environment, runs the
pre-flight checks, turns `apictl get apis` output into `Entity` values,
discovers exported archives on disk, and provides the export and import
operations used by the batch runner. Each operation is attempted exactly
once and reports success purely through the process exit status.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError, ListingError, PreflightError
from .filters import Entity
from .run_log import RunLog

# Go template understood by apictl 4.5+; prints one pretty JSON object per API.
LIST_FORMAT = "{{ jsonPretty . }}"
ARCHIVE_SUFFIX = ".zip"
PARAMS_FILENAME = "params.yaml"


def resolve_command(config: Dict[str, Any], environment: str) -> str:
    """
    Returns the apictl executable configured for an environment.

    Different API Manager versions need different apictl builds, so the
    `environments` mapping in the configuration can point each environment at
    its own binary (e.g. `dev: apictl45`). Unmapped environments use
    `default_apictl`.

    Raises:
        ConfigError: If the environment is unmapped and no default is set.
    """
    command = config.get("environments", {}).get(environment)
    if command:
        return command
    default = config.get("default_apictl")
    if default:
        return default
    raise ConfigError(
        f"No APIM version mapping found for environment: {environment}. "
        f"Add it under 'environments' in the configuration "
        f"(example: {environment}: apictl45)."
    )


def check_installed(command: str) -> str:
    """Returns the full path of the apictl binary, or raises PreflightError."""
    path = shutil.which(command)
    if path is None:
        raise PreflightError(f"{command} is not installed or not in PATH")
    return path


def check_environment(command: str, environment: str) -> None:
    """Confirms the environment is reachable by listing its APIs once."""
    proc = subprocess.run(
        [command, "get", "apis", "-e", environment],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    if proc.returncode != 0:
        raise PreflightError(
            f"Failed to connect to environment: {environment}. "
            f"Please ensure you are logged in (use: {command} login {environment})."
        )


def _iter_json_objects(text: str):
    """Yields each JSON value from a stream of concatenated JSON documents."""
    decoder = json.JSONDecoder()
    idx = 0
    end = len(text)
    while True:
        while idx < end and text[idx].isspace():
            idx += 1
        if idx >= end:
            return
        obj, idx = decoder.raw_decode(text, idx)
        yield obj


def parse_api_listing(text: str) -> List[Entity]:
    """
    Converts `apictl get apis` JSON output into entities.

    Records without a name, version or provider are dropped. A JSON array of
    objects is accepted as well as the concatenated-object stream.

    Raises:
        ListingError: If the output cannot be decoded.
    """
    try:
        values = list(_iter_json_objects(text))
    except json.JSONDecodeError as e:
        raise ListingError(f"Failed to parse API data: {e}") from e

    records: List[Any] = []
    for value in values:
        if isinstance(value, list):
            records.extend(value)
        else:
            records.append(value)

    entities: List[Entity] = []
    for rec in records:
        if not isinstance(rec, dict):
            continue
        name = str(rec.get("Name") or "")
        version = str(rec.get("Version") or "")
        provider = str(rec.get("Provider") or "")
        status = str(rec.get("LifeCycleStatus") or "")
        if name and version and provider:
            entities.append(Entity(name, version, provider, status))
    return entities


def list_apis(command: str, environment: str) -> List[Entity]:
    """
    Fetches every API in an environment.

    Raises:
        ListingError: If apictl fails, prints nothing, or prints no usable APIs.
    """
    proc = subprocess.run(
        [command, "get", "apis", "-e", environment, "--format", LIST_FORMAT],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
    )
    if proc.returncode != 0 or not proc.stdout.strip():
        raise ListingError("Failed to fetch API list")
    entities = parse_api_listing(proc.stdout)
    if not entities:
        raise ListingError("No APIs found or failed to retrieve API list")
    return entities


def set_export_directory(command: str, directory: str | Path) -> bool:
    proc = subprocess.run(
        [command, "set", "--export-directory", str(directory)],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    return proc.returncode == 0


def archive_to_entity(path: Path) -> Optional[Entity]:
    """Maps 'Name_Version.zip' to an entity; None if there is no separator."""
    stem = path.name[: -len(ARCHIVE_SUFFIX)]
    name, sep, version = stem.rpartition("_")
    if not sep or not name or not version:
        return None
    return Entity(name, version, source=str(path))


def discover_archives(
    directory: str | Path, log: Optional[RunLog] = None
) -> List[Entity]:
    """
    Finds exported API archives below a directory.

    Archives are searched recursively and returned in sorted path order.
    Files that do not follow the Name_Version.zip convention are reported
    and left out.

    Raises:
        ListingError: If the directory does not exist or holds no archives.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ListingError(f"Import directory does not exist: {directory}")

    entities: List[Entity] = []
    for path in sorted(directory.rglob(f"*{ARCHIVE_SUFFIX}")):
        if not path.is_file():
            continue
        entity = archive_to_entity(path)
        if entity is None:
            if log is not None:
                log.message(f"Ignoring archive without Name_Version form: {path}")
            continue
        entities.append(entity)
    if not entities:
        raise ListingError(f"No API files found in {directory}")
    return entities


def params_file_for(params_dir: str | Path, entity: Entity) -> Optional[Path]:
    """Returns <params_dir>/<Name_Version>/params.yaml if it exists."""
    candidate = Path(params_dir) / f"{entity.name}_{entity.version}" / PARAMS_FILENAME
    return candidate if candidate.is_file() else None


class ApiExporter:
    """Exports one API per call with `apictl export api`."""

    def __init__(self, command: str, environment: str, log: RunLog) -> None:
        self.command = command
        self.environment = environment
        self.log = log

    def build_args(self, entity: Entity) -> List[str]:
        return [
            self.command,
            "export",
            "api",
            "--name",
            entity.name,
            "--version",
            entity.version,
            "--provider",
            entity.provider,
            "--environment",
            self.environment,
            "--format",
            "JSON",
            "--insecure",
        ]

    def perform(self, entity: Entity) -> bool:
        self.log.message(
            f"Exporting API: {entity.name} (v{entity.version}) by {entity.provider}"
        )
        ok = _run_logged(self.build_args(entity), self.log)
        if ok:
            self.log.message(f"Successfully exported: {entity.label}")
        else:
            self.log.message(f"Failed to export: {entity.label}")
        return ok


class ApiImporter:
    """Imports one archive per call with `apictl import api --update`."""

    def __init__(
        self,
        command: str,
        environment: str,
        log: RunLog,
        params_dir: Optional[str | Path] = None,
    ) -> None:
        self.command = command
        self.environment = environment
        self.log = log
        self.params_dir = params_dir

    def build_args(self, entity: Entity, params: Optional[Path] = None) -> List[str]:
        if not entity.source:
            raise ValueError(f"Entity {entity.label} has no archive to import")
        args = [
            self.command,
            "import",
            "api",
            "--file",
            entity.source,
            "--environment",
            self.environment,
            "--update",
            "--insecure",
        ]
        if params is not None:
            args.extend(["--params", str(params)])
        return args

    def perform(self, entity: Entity) -> bool:
        self.log.message(f"Importing API: {entity.name}_{entity.version}")
        self.log.message(f"  Source: {entity.source}")
        params = None
        if self.params_dir is not None:
            params = params_file_for(self.params_dir, entity)
            if params is not None:
                self.log.message(f"  Using params: {params}")
        ok = _run_logged(self.build_args(entity, params), self.log)
        if ok:
            self.log.message(f"Successfully imported: {entity.label}")
        else:
            self.log.message(f"Failed to import: {entity.label}")
        return ok


def _run_logged(args: List[str], log: RunLog) -> bool:
    """Runs apictl once, sending its stderr to the log file. True on exit 0."""
    try:
        proc = subprocess.run(
            args,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        log.append_raw(f"{args[0]}: {e}")
        return False
    log.append_raw(proc.stderr)
    return proc.returncode == 0


def default_import_dir(export_root: str | Path, source_env: str) -> Path:
    return Path(export_root) / "apis" / source_env

