"""Coverage report rendering.

Three forms are produced from an AggregatedView (one snapshot) or a
DeltaView (base vs. head):

Plain text, aligned for terminals and CI logs::

    a/...:  70.00%   7 of 10
    b/...:  23.08%   3 of 13
    <all>:  43.48%  10 of 23

Markdown, for pull request comments::

    | Package | Coverage | Statements |
    |:--|--:|--:|
    a/...|70.00%|7 of 10
    b/...|23.08%|3 of 13
    **Total**|43.48%|10 of 23

Structured, for JSON output (build_summary):
{
    "grouping": str,
    "summary": {
        "total_statements": int,
        "covered_statements": int,
        "coverage_percent": float,
        "base_total_statements": int,        # diffs only
        "base_covered_statements": int,      # diffs only
        "base_coverage_percent": float,      # diffs only
        "change_percent": float              # diffs only
    },
    "paths": [
        {
            "path": str,
            "total_statements": int,
            "covered_statements": int,
            "coverage_percent": float,
            "base": {...} | null,            # diffs only, null without base
            "change_percent": float          # diffs only
        },
        ...
    ]
}

Rows are always in ascending path order; the synthetic total row comes last
and is only added when there is more than one path. A zero statement total
reads as 0.00%.
"""

from __future__ import annotations

from typing import Any, NamedTuple, Protocol, TextIO, runtime_checkable

from coverpkg.coverage.models import Counts, Grouping

TOTAL_TEXT_LABEL = "<all>:"
TOTAL_MD_LABEL = "**Total**"


class PathDetailer(Protocol):
    """Sorted paths with head counts."""

    @property
    def grouping(self) -> Grouping: ...

    def paths(self) -> list[str]: ...

    def detail(self, path: str) -> Counts: ...


@runtime_checkable
class BaseDetailer(Protocol):
    """Adds base counts to a PathDetailer."""

    def base_detail(self, path: str) -> Counts: ...


class _Row(NamedTuple):
    path: str
    head: Counts
    base: Counts
    is_total: bool = False


def _rows(view: PathDetailer) -> tuple[list[_Row], bool]:
    """Collect one row per path plus the synthetic total row.

    Also returns whether view carries base data.
    """
    is_delta = isinstance(view, BaseDetailer)
    rows: list[_Row] = []
    head_total = Counts()
    base_total = Counts()
    for path in view.paths():
        head = view.detail(path)
        base = view.base_detail(path) if is_delta else Counts()  # type: ignore[attr-defined]
        head_total += head
        base_total += base
        rows.append(_Row(path, head, base))
    if len(rows) > 1:
        rows.append(_Row("", head_total, base_total, is_total=True))
    return rows, is_delta


def _digits(n: int) -> int:
    return len(str(n))


def render_text(view: PathDetailer) -> str:
    """Render an aligned plain-text report, one line per path.

    Rows of a diff carry the signed change and, when the base had
    statements, the base coverage in a ``(was ...)`` clause.
    """
    rows, is_delta = _rows(view)
    if not rows:
        return ""

    name_width = max(len(row.path) for row in rows if not row.is_total) + 5
    covered_width = _digits(max(row.head.covered for row in rows))
    total_width = _digits(max(row.head.total for row in rows))
    base_covered_width = _digits(max(row.base.covered for row in rows))

    lines = []
    for path, head, base, is_total in rows:
        if is_total:
            label = TOTAL_TEXT_LABEL
        elif head.is_aggregate:
            label = path + "/...:"
        else:
            label = path + ":"

        line = f"{label:<{name_width}} {head.percent:6.2f}%  {head.covered:>{covered_width}} of "
        if base.total > 0:
            line += (
                f"{head.total:>{total_width}} {head.percent - base.percent:+7.2f}%"
                f"  (was {base.percent:6.2f}%  {base.covered:>{base_covered_width}} of {base.total})"
            )
        elif is_delta:
            line += f"{head.total:>{total_width}} {head.percent - base.percent:+7.2f}%"
        else:
            line += f"{head.total}"
        lines.append(line + "\n")
    return "".join(lines)


def render_markdown(view: PathDetailer) -> str:
    """Render a Markdown table, headed by the view's grouping.

    Change columns appear only when some path has base statements.
    """
    rows, _ = _rows(view)
    has_base = any(row.base.total > 0 for row in rows)

    heading = f"| {view.grouping.label} | Coverage | Statements |"
    if has_base:
        lines = [
            heading + " Change | (Covered) | (Statements) |\n",
            "|:--|--:|--:|--:|--:|--:|\n",
        ]
    else:
        lines = [heading + "\n", "|:--|--:|--:|\n"]

    for path, head, base, is_total in rows:
        if is_total:
            label = TOTAL_MD_LABEL
        elif head.is_aggregate:
            label = path + "/..."
        else:
            label = path

        line = f"{label}|{head.percent:.2f}%|{head.covered} of {head.total}"
        if base.total > 0:
            line += (
                f"|{head.percent - base.percent:+.2f}%"
                f"|({base.percent:.2f}%)|({base.covered} of {base.total})"
            )
        lines.append(line + "\n")
    return "".join(lines)


def write_text(stream: TextIO, view: PathDetailer) -> None:
    stream.write(render_text(view))


def write_markdown(stream: TextIO, view: PathDetailer) -> None:
    stream.write(render_markdown(view))


def _counts_dict(counts: Counts) -> dict[str, Any]:
    return {
        "total_statements": counts.total,
        "covered_statements": counts.covered,
        "coverage_percent": round(counts.percent, 2),
    }


def build_summary(view: PathDetailer) -> dict[str, Any]:
    """Build a structured summary suitable for JSON serialization."""
    rows, is_delta = _rows(view)
    path_rows = [row for row in rows if not row.is_total]

    head_total = sum((row.head for row in path_rows), Counts())
    base_total = sum((row.base for row in path_rows), Counts())

    summary = _counts_dict(head_total)
    if is_delta:
        summary.update(
            {
                "base_total_statements": base_total.total,
                "base_covered_statements": base_total.covered,
                "base_coverage_percent": round(base_total.percent, 2),
                "change_percent": round(head_total.percent - base_total.percent, 2),
            }
        )

    entries = []
    for path, head, base, _ in path_rows:
        entry: dict[str, Any] = {"path": path, **_counts_dict(head)}
        if is_delta:
            entry["base"] = _counts_dict(base) if base.total > 0 else None
            entry["change_percent"] = round(head.percent - base.percent, 2)
        entries.append(entry)

    return {
        "grouping": view.grouping.name.lower(),
        "summary": summary,
        "paths": entries,
    }


def build_text_summary(view: PathDetailer) -> str:
    """One-line summary for log and annotation contexts."""
    rows, _ = _rows(view)
    if not rows:
        return "No coverage data"
    head = rows[-1].head
    return f"Coverage: {head.percent:.2f}% ({head.covered} of {head.total} statements)"
