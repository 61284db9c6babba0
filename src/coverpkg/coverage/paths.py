"""Path taxonomy for Go coverage locations.

Every grouping is derived from a statement location such as
``github.com/org/repo/internal/pkg/file.go:10.2,12.9``:

- file:    ``github.com/org/repo/internal/pkg/file.go``
- package: ``github.com/org/repo/internal/pkg``
- root:    ``github.com/org/repo/internal`` (package, at most 4 segments)
- module:  ``github.com/org/repo`` (package, at most 3 segments)

The truncation depths match the host/org/repo[/internal] layout that stored
coverage notes were written with, so they must not change.

All functions are total: malformed input yields a best-effort string and a
debug diagnostic, never an exception.
"""

from __future__ import annotations

from coverpkg.core.logging import DiagnosticSink, emit

ROOT_DEPTH = 4
MODULE_DEPTH = 3


def split_location(path: str) -> tuple[str, str]:
    """Split a statement location into (file, position).

    Position is empty when there is no ``:`` suffix.
    """
    n = path.rfind(":")
    if n < 0:
        return path, ""
    return path[:n], path[n + 1 :]


def file_path(path: str, log: DiagnosticSink | None = None) -> str:  # noqa: ARG001
    """Strip the ``:position`` suffix; identity for plain file paths."""
    return split_location(path)[0]


def strip_file(path: str, log: DiagnosticSink | None = None) -> str:
    """Drop the final segment of a file path."""
    n = path.rfind("/")
    if n < 0:
        emit(log, "debug", "can't find package in path", path=path)
        return path
    return path[:n]


def truncate(path: str, depth: int, log: DiagnosticSink | None = None) -> str:
    """Keep at most ``depth`` leading ``/`` segments of ``path``."""
    parts = path.split("/")
    if len(parts) < 2 and path:
        emit(log, "debug", "path has too few segments", path=path, depth=depth)
    return "/".join(parts[:depth])


def package_path(path: str, log: DiagnosticSink | None = None) -> str:
    """Package containing a file or statement location."""
    return strip_file(file_path(path, log), log)


def root_path(path: str, log: DiagnosticSink | None = None) -> str:
    """Package path truncated to at most four segments."""
    return truncate(package_path(path, log), ROOT_DEPTH, log)


def module_path(path: str, log: DiagnosticSink | None = None) -> str:
    """Package path truncated to at most three segments."""
    return truncate(package_path(path, log), MODULE_DEPTH, log)


def package_to_root(path: str, log: DiagnosticSink | None = None) -> str:
    return truncate(path, ROOT_DEPTH, log)


def root_to_module(path: str, log: DiagnosticSink | None = None) -> str:
    return truncate(path, MODULE_DEPTH, log)


def is_excluded(path: str, excludes: frozenset[str] | tuple[str, ...] | list[str]) -> bool:
    """True if any exclude token is a complete ``/``-bounded segment of path.

    ``gen`` excludes ``gen/x.go`` and ``a/gen/b/x.go`` but not ``a/generated/x.go``.
    """
    for token in excludes:
        if not token:
            continue
        if (
            path == token
            or path.startswith(token + "/")
            or path.endswith("/" + token)
            or f"/{token}/" in path
        ):
            return True
    return False
