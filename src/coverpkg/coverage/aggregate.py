"""Rolling coverage up from statements to files, packages, roots and modules.

Rollup sums statement totals and covered statements per derived path:

- count[path] = sum(count[child] for child whose parent is path)
- covered[path] = sum(covered[child] for child whose parent is path)

Derivation goes one grouping at a time (see ``Grouping.rollup``), so
rolling statements straight to packages gives the same view as rolling them
to files first and then to packages. Nothing is lost or counted twice.
"""

from __future__ import annotations

from typing import Any

from coverpkg.core.errors import GroupingError
from coverpkg.core.logging import DiagnosticSink
from coverpkg.coverage.models import AggregatedView, Counts, Grouping, PathView, percentage


def native_grouping(view: Any) -> Grouping:
    """Return the grouping a view enumerates at.

    Raises:
        GroupingError: If view lacks ``grouping`` or ``each_path``.
    """
    grouping = getattr(view, "grouping", None)
    if not isinstance(grouping, Grouping) or not callable(getattr(view, "each_path", None)):
        raise GroupingError.not_enumerable(view)
    return grouping


def aggregate(
    source: PathView,
    grouping: Grouping,
    *,
    log: DiagnosticSink | None = None,
) -> AggregatedView:
    """Roll a view up to a coarser (or equal) grouping.

    Args:
        source: StatementData or any view at or finer than ``grouping``.
        grouping: Target grouping.
        log: Optional diagnostic sink for paths that can't be split.

    Returns:
        A fresh AggregatedView at ``grouping``.

    Raises:
        GroupingError: If source can't be enumerated or is coarser than grouping.
    """
    native = native_grouping(source)
    if grouping is Grouping.STATEMENT or grouping < native:
        raise GroupingError.cannot_refine(native.name.lower(), grouping.name.lower())

    steps = [g for g in Grouping if native < g <= grouping]

    totals: dict[str, tuple[int, int]] = {}
    for path, count, covered in source.each_path():
        for step in steps:
            path = step.rollup(path, log)
        total_so_far, covered_so_far = totals.get(path, (0, 0))
        totals[path] = (total_so_far + count, covered_so_far + covered)

    return AggregatedView(
        grouping,
        {path: Counts(total, covered) for path, (total, covered) in totals.items()},
    )


def by_file(source: PathView, *, log: DiagnosticSink | None = None) -> AggregatedView:
    return aggregate(source, Grouping.FILE, log=log)


def by_package(source: PathView, *, log: DiagnosticSink | None = None) -> AggregatedView:
    return aggregate(source, Grouping.PACKAGE, log=log)


def by_root(source: PathView, *, log: DiagnosticSink | None = None) -> AggregatedView:
    return aggregate(source, Grouping.ROOT, log=log)


def by_module(source: PathView, *, log: DiagnosticSink | None = None) -> AggregatedView:
    return aggregate(source, Grouping.MODULE, log=log)


def percent(view: PathView) -> float:
    """Overall covered percentage of a view; 0.0 when it has no statements.

    Raises:
        GroupingError: If view can't be enumerated.
    """
    native_grouping(view)
    total = covered = 0
    for _, count, cov in view.each_path():
        total += count
        covered += cov
    return percentage(covered, total)
