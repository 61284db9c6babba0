"""Producing coverage profiles with go test.

A single ``go test`` run covers every requested package from every test
binary::

    go test -coverprofile <profile> -coverpkg ./a/...,./b/... ./a/... ./b/...

Directories are expanded to recursive patterns (``.`` becomes ``./...``);
anything else, such as an import path, is passed through untouched.
"""

from __future__ import annotations

import os
import subprocess
import sys
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from coverpkg.core.errors import CollectError
from coverpkg.core.logging import DiagnosticSink, emit
from coverpkg.coverage.aggregate import by_file
from coverpkg.coverage.models import AggregatedView, StatementData
from coverpkg.coverage.profile import load_profile

logger = structlog.get_logger(__name__)


@dataclass
class GoTestOptions:
    """Inputs to a coverage run."""

    packages: list[str] = field(default_factory=lambda: ["."])
    excludes: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    cover_profile: Path | None = None  # temp file if None
    timeout_sec: float | None = None


def expand_packages(packages: Sequence[str], cwd: Path) -> list[str]:
    """Turn directories into ``./dir/...`` patterns.

    Raises:
        NoPackagesError: If nothing is left to test.
    """
    pkgs = []
    for arg in packages:
        arg = arg.strip()
        if not arg:
            continue
        candidate = cwd / arg
        if candidate.is_dir():
            rel = os.path.relpath(candidate, cwd).replace(os.sep, "/")
            if rel == ".":
                pkgs.append("./...")
                continue
            if rel != ".." and not rel.startswith("../"):
                pkgs.append(f"./{rel}/...")
                continue
        pkgs.append(arg)
    if not pkgs:
        raise CollectError.no_packages()
    return pkgs


def go_test_command(profile: Path, pkgs: Sequence[str], flags: Sequence[str] = ()) -> list[str]:
    return ["go", "test", *flags, "-coverprofile", str(profile), "-coverpkg", ",".join(pkgs), *pkgs]


def collect_profile(
    options: GoTestOptions,
    *,
    cwd: Path | None = None,
    log: DiagnosticSink | None = None,
) -> Path:
    """Run go test and return the path of the profile it wrote.

    Raises:
        NoPackagesError: If no packages were given.
        CollectError: If go is missing, the run times out, or tests fail.
            The profile is removed on failure.
    """
    cwd = cwd or Path.cwd()
    pkgs = expand_packages(options.packages, cwd)

    profile = options.cover_profile
    if profile is None:
        fd, name = tempfile.mkstemp(prefix="covpkg")
        os.close(fd)
        profile = Path(name)

    cmd = go_test_command(profile, pkgs, options.flags)
    emit(log, "debug", "run> " + " ".join(cmd))
    logger.info("go_test_started", packages=pkgs, profile=str(profile))

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=options.timeout_sec,
        )
    except FileNotFoundError as e:
        profile.unlink(missing_ok=True)
        raise CollectError.tool_missing("go") from e
    except subprocess.TimeoutExpired as e:
        profile.unlink(missing_ok=True)
        raise CollectError.tests_failed(-1, f"timed out after {options.timeout_sec}s") from e

    # Test output goes to stderr; stdout is for reports.
    if result.stdout:
        sys.stderr.write(result.stdout)
        sys.stderr.flush()

    if result.returncode != 0:
        profile.unlink(missing_ok=True)
        emit(log, "debug", "<exit", returncode=result.returncode, stderr=result.stderr)
        raise CollectError.tests_failed(result.returncode, result.stderr)

    logger.info("go_test_finished", profile=str(profile))
    return profile


def collect_statements(
    options: GoTestOptions,
    *,
    cwd: Path | None = None,
    log: DiagnosticSink | None = None,
) -> StatementData:
    """Run go test and parse its profile, honoring ``options.excludes``."""
    profile = collect_profile(options, cwd=cwd, log=log)
    try:
        return load_profile(profile, excludes=options.excludes, log=log)
    finally:
        if options.cover_profile is None:
            profile.unlink(missing_ok=True)


def collect_files(
    options: GoTestOptions,
    *,
    cwd: Path | None = None,
    log: DiagnosticSink | None = None,
) -> AggregatedView:
    return by_file(collect_statements(options, cwd=cwd, log=log), log=log)


def go_module(cwd: Path | None = None, *, log: DiagnosticSink | None = None) -> str:
    """Module path of the Go module at cwd, or "" if go can't tell."""
    emit(log, "debug", "exec> go list -m")
    try:
        result = subprocess.run(
            ["go", "list", "-m"],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (subprocess.SubprocessError, OSError):
        return ""
    if result.returncode != 0:
        return ""
    return result.stdout.strip()
