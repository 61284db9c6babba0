"""Coverage data model.

Statement-level data is loaded once from a profile; every coarser view is
derived from it and never mutated afterwards. All views share one shape:
a ``grouping`` tag plus ``each_path()``, which yields ``(path, total,
covered)`` at that native granularity.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from coverpkg.core.errors import GroupingError
from coverpkg.core.logging import DiagnosticSink
from coverpkg.coverage import paths


class Grouping(IntEnum):
    """Granularity of a view, ordered finest to coarsest."""

    STATEMENT = 0
    FILE = 1
    PACKAGE = 2
    ROOT = 3
    MODULE = 4

    @property
    def label(self) -> str:
        """Heading used for the first Markdown column."""
        return _LABELS[self]

    @property
    def is_aggregate(self) -> bool:
        """Whether rows at this grouping sum several files."""
        return self >= Grouping.PACKAGE

    @property
    def rollup(self) -> Callable[[str, DiagnosticSink | None], str]:
        """Derive this grouping's path from a path one level finer."""
        if self is Grouping.STATEMENT:
            raise ValueError("statements are the finest grouping")
        return _ROLLUP[self]

    @classmethod
    def parse(cls, name: str) -> Grouping:
        """Look up a user-facing grouping name (file, package, root, module)."""
        try:
            grouping = cls[name.strip().upper()]
        except KeyError:
            grouping = None
        if grouping is None or grouping is cls.STATEMENT:
            raise GroupingError.unknown(name)
        return grouping


_LABELS: dict[Grouping, str] = {
    Grouping.STATEMENT: "Statement",
    Grouping.FILE: "File",
    Grouping.PACKAGE: "Package",
    Grouping.ROOT: "Root",
    Grouping.MODULE: "Module",
}

_ROLLUP: dict[Grouping, Callable[[str, DiagnosticSink | None], str]] = {
    Grouping.FILE: paths.file_path,
    Grouping.PACKAGE: paths.strip_file,
    Grouping.ROOT: paths.package_to_root,
    Grouping.MODULE: paths.root_to_module,
}


@dataclass(frozen=True, slots=True)
class Counts:
    """Executable statements and covered statements for one path.

    ``is_aggregate`` only controls the ``/...`` decoration in reports.
    """

    total: int = 0
    covered: int = 0
    is_aggregate: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if self.total < 0 or self.covered < 0:
            raise ValueError(f"negative statement counts: {self.covered} of {self.total}")
        if self.covered > self.total:
            raise ValueError(f"covered exceeds total: {self.covered} of {self.total}")

    def __add__(self, other: Counts) -> Counts:
        return Counts(
            total=self.total + other.total,
            covered=self.covered + other.covered,
            is_aggregate=self.is_aggregate,
        )

    @property
    def percent(self) -> float:
        """Covered percentage, 0.0 for an empty total."""
        return percentage(self.covered, self.total)


def percentage(covered: int, total: int) -> float:
    if total == 0:
        return 0.0
    return covered * 100 / total


@runtime_checkable
class PathView(Protocol):
    """Anything that can be regrouped or diffed."""

    @property
    def grouping(self) -> Grouping: ...

    def each_path(self) -> Iterator[tuple[str, int, int]]: ...


@dataclass(frozen=True, slots=True)
class StatementKey:
    """A single profile block: ``file:start.col,end.col`` plus its statement count.

    Identity is the location string; ``count`` travels with it.
    """

    filepos: str
    count: int = field(compare=False)

    def covered(self, hit: bool) -> int:
        return self.count if hit else 0


class StatementData(Mapping[StatementKey, bool]):
    """All statements of one profile and whether each was ever covered.

    Read-only once constructed.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[StatementKey, bool] | None = None) -> None:
        self._data: dict[StatementKey, bool] = dict(data or {})

    @property
    def grouping(self) -> Grouping:
        return Grouping.STATEMENT

    def __getitem__(self, key: StatementKey) -> bool:
        return self._data[key]

    def __iter__(self) -> Iterator[StatementKey]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"StatementData({len(self._data)} statements)"

    def each_path(self) -> Iterator[tuple[str, int, int]]:
        for key, hit in self._data.items():
            yield key.filepos, key.count, key.covered(hit)


@dataclass(frozen=True, slots=True)
class AggregatedView:
    """Counts per path at one grouping. Enumerates in sorted path order."""

    grouping: Grouping
    counts: Mapping[str, Counts] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ordered = {p: self.counts[p] for p in sorted(self.counts)}
        object.__setattr__(self, "counts", MappingProxyType(ordered))

    def __len__(self) -> int:
        return len(self.counts)

    def paths(self) -> list[str]:
        return list(self.counts)

    def detail(self, path: str) -> Counts:
        """Counts for path; zero counts for an unknown path."""
        c = self.counts.get(path, Counts())
        return Counts(c.total, c.covered, is_aggregate=self._aggregate(path))

    def each_path(self) -> Iterator[tuple[str, int, int]]:
        for path, c in self.counts.items():
            yield path, c.total, c.covered

    def totals(self) -> Counts:
        return sum(self.counts.values(), Counts())

    def percent(self) -> float:
        return self.totals().percent

    def _aggregate(self, path: str) -> bool:
        return self.grouping.is_aggregate and path != "."

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Serialize in the stored-notes shape: ``{path: {"Count": n, "Covered": m}}``."""
        return {p: {"Count": c.total, "Covered": c.covered} for p, c in self.counts.items()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, grouping: Grouping, data: Mapping[str, Any]) -> AggregatedView:
        """Inverse of ``to_dict``; missing fields read as zero.

        Raises:
            ValueError: on non-mapping entries or impossible counts.
        """
        counts: dict[str, Counts] = {}
        for path, value in data.items():
            if not isinstance(value, Mapping):
                raise ValueError(f"expected an object for {path!r}, got {type(value).__name__}")
            counts[path] = Counts(int(value.get("Count", 0)), int(value.get("Covered", 0)))
        return cls(grouping, counts)

    @classmethod
    def from_json(cls, grouping: Grouping, text: str) -> AggregatedView:
        data = json.loads(text) if text.strip() else {}
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return cls.from_dict(grouping, data)


@dataclass(frozen=True, slots=True)
class StatementDelta:
    """Base and head counts for one path."""

    base_total: int = 0
    base_covered: int = 0
    head_total: int = 0
    head_covered: int = 0

    @property
    def base(self) -> Counts:
        return Counts(self.base_total, self.base_covered)

    @property
    def head(self) -> Counts:
        return Counts(self.head_total, self.head_covered)


@dataclass(frozen=True, slots=True)
class DeltaView:
    """Base vs. head counts per path at one grouping."""

    grouping: Grouping
    deltas: Mapping[str, StatementDelta] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ordered = {p: self.deltas[p] for p in sorted(self.deltas)}
        object.__setattr__(self, "deltas", MappingProxyType(ordered))

    def __len__(self) -> int:
        return len(self.deltas)

    def paths(self) -> list[str]:
        return list(self.deltas)

    def detail(self, path: str) -> Counts:
        """Head counts for path."""
        d = self.deltas.get(path, StatementDelta())
        return Counts(d.head_total, d.head_covered, is_aggregate=self._aggregate(path))

    def base_detail(self, path: str) -> Counts:
        """Base counts for path."""
        d = self.deltas.get(path, StatementDelta())
        return Counts(d.base_total, d.base_covered, is_aggregate=self._aggregate(path))

    @property
    def has_base(self) -> bool:
        return any(d.base_total > 0 for d in self.deltas.values())

    def head_totals(self) -> Counts:
        return sum((d.head for d in self.deltas.values()), Counts())

    def base_totals(self) -> Counts:
        return sum((d.base for d in self.deltas.values()), Counts())

    def _aggregate(self, path: str) -> bool:
        return self.grouping.is_aggregate and path != "."
