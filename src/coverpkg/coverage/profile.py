"""Go coverage profile parser.

Go test produces coverage profiles with format:
mode: set|count|atomic
<package>/<file>:<startline>.<startcol>,<endline>.<endcol> <numstmt> <count>

Example:
mode: set
github.com/user/pkg/main.go:10.2,12.16 3 1
github.com/user/pkg/main.go:15.2,20.16 5 0

- numstmt: number of statements in block, weights the block when aggregated
- count: execution count; anything but "0" is covered

With ``-coverpkg`` the same block can appear once per test binary, so
repeated blocks are merged by OR-ing their covered state.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from pathlib import Path
from typing import TextIO

from coverpkg.core.errors import ProfileParseError
from coverpkg.core.logging import DiagnosticSink, emit
from coverpkg.coverage.models import StatementData, StatementKey
from coverpkg.coverage.paths import is_excluded


def parse_profile(
    lines: Iterable[str],
    *,
    excludes: Collection[str] = (),
    log: DiagnosticSink | None = None,
) -> StatementData:
    """Parse profile lines into StatementData.

    Args:
        lines: Profile text, one block per line. ``mode:`` lines are ignored.
        excludes: Path segment tokens whose blocks are skipped.
        log: Optional diagnostic sink for skipped lines.

    Raises:
        ProfileParseError: If a statement count is not a non-negative integer.
    """
    stmts: dict[StatementKey, bool] = {}
    excluded = tuple(excludes)

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("mode:"):
            continue

        fields = line.split()
        if len(fields) != 3:
            emit(log, "debug", "invalid profile line", line=line, lineno=lineno)
            continue

        filepos, numstmt, hits = fields
        if is_excluded(filepos, excluded):
            continue

        if not (numstmt.isascii() and numstmt.isdigit()):
            emit(log, "debug", "invalid profile fields", line=line, lineno=lineno)
            raise ProfileParseError.invalid_count(line, lineno)

        key = StatementKey(filepos, int(numstmt))
        stmts[key] = hits != "0" or stmts.get(key, False)

    return StatementData(stmts)


def read_profile(
    stream: TextIO,
    *,
    excludes: Collection[str] = (),
    log: DiagnosticSink | None = None,
) -> StatementData:
    """Parse a profile from an open text stream."""
    return parse_profile(stream, excludes=excludes, log=log)


def load_profile(
    path: Path,
    *,
    excludes: Collection[str] = (),
    log: DiagnosticSink | None = None,
) -> StatementData:
    """Parse a profile file.

    Raises:
        ProfileParseError: If the file cannot be read or a count is invalid.
    """
    try:
        with path.open(encoding="utf-8") as f:
            return read_profile(f, excludes=excludes, log=log)
    except (OSError, UnicodeDecodeError) as e:
        raise ProfileParseError.unreadable(str(path), str(e)) from e
