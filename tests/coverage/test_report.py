"""Tests for text, Markdown and structured reports."""

from __future__ import annotations

import io
from dataclasses import dataclass

import pytest

from coverpkg.coverage import (
    AggregatedView,
    Counts,
    Grouping,
    build_summary,
    build_text_summary,
    by_file,
    by_module,
    by_package,
    by_root,
    diff,
    parse_profile,
    render_markdown,
    render_text,
    write_markdown,
    write_text,
)

MD_HEAD = "| Package | Coverage | Statements |\n|:--|--:|--:|\n"
MD_DIFF = (
    "| Package | Coverage | Statements | Change | (Covered) | (Statements) |\n"
    "|:--|--:|--:|--:|--:|--:|\n"
)


@dataclass
class Snapshot:
    """Package rows in caller-chosen order: (path, covered, total)."""

    rows: list[tuple[str, int, int]]
    grouping: Grouping = Grouping.PACKAGE

    def paths(self) -> list[str]:
        return [path for path, _, _ in self.rows]

    def detail(self, path: str) -> Counts:
        for p, cov, tot in self.rows:
            if p == path:
                return Counts(tot, cov, is_aggregate=path != ".")
        return Counts()


@dataclass
class Delta:
    """Package rows in caller-chosen order: (path, base covered, base total, head covered, head total)."""

    rows: list[tuple[str, int, int, int, int]]
    grouping: Grouping = Grouping.PACKAGE

    def paths(self) -> list[str]:
        return [row[0] for row in self.rows]

    def detail(self, path: str) -> Counts:
        for p, _, _, hcov, htot in self.rows:
            if p == path:
                return Counts(htot, hcov, is_aggregate=path != ".")
        return Counts()

    def base_detail(self, path: str) -> Counts:
        for p, bcov, btot, _, _ in self.rows:
            if p == path:
                return Counts(btot, bcov)
        return Counts()


REPORT_CASES = [
    pytest.param(
        Snapshot([("pkg", 7, 10)]),
        "pkg/...:  70.00%  7 of 10\n",
        MD_HEAD + "pkg/...|70.00%|7 of 10\n",
        id="one",
    ),
    pytest.param(
        Snapshot([("a", 7, 10), ("b", 3, 13)]),
        "a/...:  70.00%   7 of 10\n"
        "b/...:  23.08%   3 of 13\n"
        "<all>:  43.48%  10 of 23\n",
        MD_HEAD + "a/...|70.00%|7 of 10\nb/...|23.08%|3 of 13\n**Total**|43.48%|10 of 23\n",
        id="two",
    ),
    pytest.param(
        Snapshot([("a", 0, 0), ("b", 2, 4)]),
        "a/...:   0.00%  0 of 0\n"
        "b/...:  50.00%  2 of 4\n"
        "<all>:  50.00%  2 of 4\n",
        MD_HEAD + "a/...|0.00%|0 of 0\nb/...|50.00%|2 of 4\n**Total**|50.00%|2 of 4\n",
        id="empty-package",
    ),
    pytest.param(
        Snapshot([("sub", 8, 10), (".", 0, 2)]),
        "sub/...:  80.00%  8 of 10\n"
        ".:         0.00%  0 of 2\n"
        "<all>:    66.67%  8 of 12\n",
        MD_HEAD + "sub/...|80.00%|8 of 10\n.|0.00%|0 of 2\n**Total**|66.67%|8 of 12\n",
        id="dot",
    ),
    pytest.param(
        Delta([("pkg", 7, 9, 7, 11)]),
        "pkg/...:  63.64%  7 of 11  -14.14%  (was  77.78%  7 of 9)\n",
        MD_DIFF + "pkg/...|63.64%|7 of 11|-14.14%|(77.78%)|(7 of 9)\n",
        id="delta",
    ),
    pytest.param(
        Delta([("pkg", 0, 0, 7, 11)]),
        "pkg/...:  63.64%  7 of 11  +63.64%\n",
        MD_HEAD + "pkg/...|63.64%|7 of 11\n",
        id="nobase",
    ),
    pytest.param(
        Delta([("pkg/a", 5, 100, 5, 100), ("pkg/b", 1, 100, 0, 0)]),
        "pkg/a/...:   5.00%  5 of 100   +0.00%  (was   5.00%  5 of 100)\n"
        "pkg/b/...:   0.00%  0 of   0   -1.00%  (was   1.00%  1 of 100)\n"
        "<all>:       5.00%  5 of 100   +2.00%  (was   3.00%  6 of 200)\n",
        MD_DIFF
        + "pkg/a/...|5.00%|5 of 100|+0.00%|(5.00%)|(5 of 100)\n"
        + "pkg/b/...|0.00%|0 of 0|-1.00%|(1.00%)|(1 of 100)\n"
        + "**Total**|5.00%|5 of 100|+2.00%|(3.00%)|(6 of 200)\n",
        id="drop",
    ),
    pytest.param(
        Delta(
            [
                ("new", 0, 0, 1, 88),
                ("match", 88, 99, 88, 99),
                ("improve", 60, 100, 80, 100),
                ("decrease", 20, 50, 20, 100),
                ("unlikely", 1, 1, 1, 1),
            ]
        ),
        "new/...:        1.14%    1 of  88   +1.14%\n"
        "match/...:     88.89%   88 of  99   +0.00%  (was  88.89%   88 of 99)\n"
        "improve/...:   80.00%   80 of 100  +20.00%  (was  60.00%   60 of 100)\n"
        "decrease/...:  20.00%   20 of 100  -20.00%  (was  40.00%   20 of 50)\n"
        "unlikely/...: 100.00%    1 of   1   +0.00%  (was 100.00%    1 of 1)\n"
        "<all>:         48.97%  190 of 388  -18.63%  (was  67.60%  169 of 250)\n",
        MD_DIFF
        + "new/...|1.14%|1 of 88\n"
        + "match/...|88.89%|88 of 99|+0.00%|(88.89%)|(88 of 99)\n"
        + "improve/...|80.00%|80 of 100|+20.00%|(60.00%)|(60 of 100)\n"
        + "decrease/...|20.00%|20 of 100|-20.00%|(40.00%)|(20 of 50)\n"
        + "unlikely/...|100.00%|1 of 1|+0.00%|(100.00%)|(1 of 1)\n"
        + "**Total**|48.97%|190 of 388|-18.63%|(67.60%)|(169 of 250)\n",
        id="complex",
    ),
]


class TestRender:
    @pytest.mark.parametrize(("view", "text", "markdown"), REPORT_CASES)
    def test_text(self, view: Snapshot | Delta, text: str, markdown: str) -> None:
        assert render_text(view) == text

    @pytest.mark.parametrize(("view", "text", "markdown"), REPORT_CASES)
    def test_markdown(self, view: Snapshot | Delta, text: str, markdown: str) -> None:
        assert render_markdown(view) == markdown

    def test_empty_view(self) -> None:
        view = AggregatedView(Grouping.PACKAGE)

        assert render_text(view) == ""
        assert render_markdown(view) == MD_HEAD

    def test_writers_match_renderers(self) -> None:
        view = Snapshot([("a", 7, 10), ("b", 3, 13)])
        text, md = io.StringIO(), io.StringIO()

        write_text(text, view)
        write_markdown(md, view)

        assert text.getvalue() == render_text(view)
        assert md.getvalue() == render_markdown(view)


class TestRenderProfiles:
    """A single block that flips from uncovered to covered, at every grouping."""

    BASE = "github.com/mutility/coverpkg/internal/testdata/fake.go:1.2,2.3 2 0"
    HEAD = "github.com/mutility/coverpkg/internal/testdata/fake.go:1.2,2.3 2 1"

    @pytest.mark.parametrize(
        ("rollup", "label", "path"),
        [
            (by_file, "File", "github.com/mutility/coverpkg/internal/testdata/fake.go"),
            (by_package, "Package", "github.com/mutility/coverpkg/internal/testdata/..."),
            (by_root, "Root", "github.com/mutility/coverpkg/internal/..."),
            (by_module, "Module", "github.com/mutility/coverpkg/..."),
        ],
    )
    def test_markdown_at_each_grouping(self, rollup, label: str, path: str) -> None:
        delta = diff(rollup(parse_profile([self.BASE])), rollup(parse_profile([self.HEAD])))

        assert render_markdown(delta) == (
            f"| {label} | Coverage | Statements | Change | (Covered) | (Statements) |\n"
            "|:--|--:|--:|--:|--:|--:|\n"
            f"{path}|100.00%|2 of 2|+100.00%|(0.00%)|(0 of 2)\n"
        )

    def test_aggregated_view_rows_are_sorted(self) -> None:
        stmts = parse_profile(["m/z/a.go:1.1,2.2 1 1", "m/a/a.go:1.1,2.2 1 0"])

        lines = render_text(by_package(stmts)).splitlines()

        assert lines[0].startswith("m/a/...:")
        assert lines[1].startswith("m/z/...:")
        assert lines[2].startswith("<all>:")


class TestBuildSummary:
    def test_snapshot(self) -> None:
        summary = build_summary(Snapshot([("a", 7, 10), ("b", 3, 13)]))

        assert summary == {
            "grouping": "package",
            "summary": {
                "total_statements": 23,
                "covered_statements": 10,
                "coverage_percent": 43.48,
            },
            "paths": [
                {"path": "a", "total_statements": 10, "covered_statements": 7, "coverage_percent": 70.0},
                {"path": "b", "total_statements": 13, "covered_statements": 3, "coverage_percent": 23.08},
            ],
        }

    def test_delta(self) -> None:
        summary = build_summary(Delta([("new", 0, 0, 1, 4), ("old", 1, 2, 2, 2)]))

        assert summary["summary"]["base_total_statements"] == 2
        assert summary["summary"]["base_coverage_percent"] == 50.0
        assert summary["summary"]["change_percent"] == 0.0
        new, old = summary["paths"]
        assert new["base"] is None
        assert new["change_percent"] == 25.0
        assert old["base"] == {"total_statements": 2, "covered_statements": 1, "coverage_percent": 50.0}
        assert old["change_percent"] == 50.0

    def test_zero_total_is_zero_percent(self) -> None:
        summary = build_summary(Snapshot([("empty", 0, 0)]))

        assert summary["summary"]["coverage_percent"] == 0.0
        assert summary["paths"][0]["coverage_percent"] == 0.0


class TestTextSummary:
    def test_uses_total_row(self) -> None:
        assert build_text_summary(Snapshot([("a", 7, 10), ("b", 3, 13)])) == (
            "Coverage: 43.48% (10 of 23 statements)"
        )

    def test_single_row(self) -> None:
        assert build_text_summary(Snapshot([("a", 7, 10)])) == "Coverage: 70.00% (7 of 10 statements)"

    def test_empty(self) -> None:
        assert build_text_summary(AggregatedView(Grouping.FILE)) == "No coverage data"
