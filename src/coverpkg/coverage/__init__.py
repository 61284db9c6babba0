"""Statement coverage parsing, aggregation, diffing and reporting.

This package provides:
- Go coverage profile parsing into statement-level data
- Rollup to file, package, root and module groupings
- Diffs between two snapshots captured at any groupings
- Plain text, Markdown and structured reports

Usage:
    from coverpkg.coverage import by_package, diff, load_profile, render_text

    head = load_profile(Path("cover.out"), excludes=["gen"])
    print(render_text(by_package(head)))

    # Compare against a stored base at whatever grouping it was saved
    delta = diff(base_files, by_package(head))
    print(render_markdown(delta))
"""

from coverpkg.coverage.aggregate import (
    aggregate,
    by_file,
    by_module,
    by_package,
    by_root,
    native_grouping,
    percent,
)
from coverpkg.coverage.diff import comparison_grouping, diff
from coverpkg.coverage.models import (
    AggregatedView,
    Counts,
    DeltaView,
    Grouping,
    PathView,
    StatementData,
    StatementDelta,
    StatementKey,
    percentage,
)
from coverpkg.coverage.paths import (
    file_path,
    is_excluded,
    module_path,
    package_path,
    root_path,
)
from coverpkg.coverage.profile import load_profile, parse_profile, read_profile
from coverpkg.coverage.report import (
    build_summary,
    build_text_summary,
    render_markdown,
    render_text,
    write_markdown,
    write_text,
)

__all__ = [
    # Models
    "AggregatedView",
    "Counts",
    "DeltaView",
    "Grouping",
    "PathView",
    "StatementData",
    "StatementDelta",
    "StatementKey",
    "percentage",
    # Paths
    "file_path",
    "is_excluded",
    "module_path",
    "package_path",
    "root_path",
    # Profile
    "load_profile",
    "parse_profile",
    "read_profile",
    # Aggregation
    "aggregate",
    "by_file",
    "by_module",
    "by_package",
    "by_root",
    "native_grouping",
    "percent",
    # Diff
    "comparison_grouping",
    "diff",
    # Report
    "build_summary",
    "build_text_summary",
    "render_markdown",
    "render_text",
    "write_markdown",
    "write_text",
]
