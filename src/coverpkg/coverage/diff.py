"""Reconciling two coverage snapshots.

The snapshots may have been captured at different groupings (a stored
file-level note against a freshly computed package view, say). They are
compared at the coarser of the two; detail that one side never had can't be
invented for the other.
"""

from __future__ import annotations

from coverpkg.core.logging import DiagnosticSink, emit
from coverpkg.coverage.aggregate import aggregate, native_grouping
from coverpkg.coverage.models import DeltaView, Grouping, PathView, StatementDelta


def comparison_grouping(old: PathView, new: PathView) -> Grouping:
    """Coarser of the two native groupings; statements compare by file.

    Raises:
        GroupingError: If either view can't be enumerated.
    """
    return max(native_grouping(old), native_grouping(new), Grouping.FILE)


def diff(
    old: PathView,
    new: PathView,
    *,
    log: DiagnosticSink | None = None,
) -> DeltaView:
    """Compute per-path base (old) and head (new) counts.

    A path seen on one side only gets zero counts on the other: it was added
    or removed between the snapshots.

    Raises:
        GroupingError: If either view can't be enumerated.
    """
    grouping = comparison_grouping(old, new)
    emit(
        log,
        "debug",
        "diffing coverage",
        base=native_grouping(old).name.lower(),
        head=native_grouping(new).name.lower(),
        grouping=grouping.name.lower(),
    )

    base = aggregate(old, grouping, log=log)
    head = aggregate(new, grouping, log=log)

    deltas: dict[str, StatementDelta] = {}
    for path in base.paths() + [p for p in head.paths() if p not in base.counts]:
        b = base.detail(path)
        h = head.detail(path)
        deltas[path] = StatementDelta(
            base_total=b.total,
            base_covered=b.covered,
            head_total=h.total,
            head_covered=h.covered,
        )
    return DeltaView(grouping, deltas)
