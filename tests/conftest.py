"""Test configuration for the suite.

Ensures the local package source is importable ahead of any globally
installed version so tests run against the current workspace code.
"""

import json
import os
import stat
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Stand-in for apictl used by the end-to-end tests. It records every call,
# prints FAKE_LISTING for `get apis --format`, and fails exports/imports whose
# API name is listed in FAKE_FAIL.
FAKE_APICTL = """#!/bin/sh
echo "$*" >> "$FAKE_CALLS"
if [ "$1" = "get" ]; then
  if [ -n "$FAKE_GET_FAIL" ]; then exit 1; fi
  case "$*" in
    *--format*) cat "$FAKE_LISTING" ;;
  esac
  exit 0
fi
if [ "$1" = "set" ]; then exit 0; fi
name=""
while [ $# -gt 0 ]; do
  case "$1" in
    --name) name="$2"; shift 2 ;;
    --file) name=$(basename "$2" .zip); shift 2 ;;
    *) shift ;;
  esac
done
for f in $FAKE_FAIL; do
  if [ "$f" = "$name" ]; then echo "apictl: failed $name" >&2; exit 1; fi
done
exit 0
"""


def api_record(name, version, provider, status):
    return {
        "Id": f"{name}-{version}",
        "Name": name,
        "Version": version,
        "Context": f"/{name.lower()}/{version}",
        "Provider": provider,
        "LifeCycleStatus": status,
    }


def listing_text(records):
    """Mimics `apictl get apis --format '{{ jsonPretty . }}'`: one object per API."""
    return "\n".join(json.dumps(r, indent=2) for r in records) + "\n"


@pytest.fixture
def fake_apictl(tmp_path):
    """Installs a fake `apictl` on PATH and returns the env for subprocess runs."""
    if sys.platform.startswith("win"):
        pytest.skip("fake apictl is a POSIX shell script")
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "apictl"
    script.write_text(FAKE_APICTL)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    env = os.environ.copy()
    env["PATH"] = str(bin_dir) + os.pathsep + env.get("PATH", "")
    env["PYTHONPATH"] = str(ROOT) + os.pathsep + env.get("PYTHONPATH", "")
    env["FAKE_CALLS"] = str(tmp_path / "calls.txt")
    env["FAKE_LISTING"] = str(tmp_path / "listing.json")
    env.pop("FAKE_FAIL", None)
    env.pop("FAKE_GET_FAIL", None)
    return env
