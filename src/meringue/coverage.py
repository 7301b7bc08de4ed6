from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Protocol


class CounterEntity(Enum):
    INSTRUCTION = "INSTRUCTION"
    BRANCH = "BRANCH"
    LINE = "LINE"
    COMPLEXITY = "COMPLEXITY"
    METHOD = "METHOD"


@dataclass(frozen=True, slots=True)
class Counter:
    missed: int = 0
    covered: int = 0

    @property
    def total(self) -> int:
        return self.missed + self.covered

    @property
    def ratio(self) -> float:
        return self.covered / self.total if self.total else 0.0

    def __add__(self, other: "Counter") -> "Counter":
        return Counter(self.missed + other.missed, self.covered + other.covered)


@dataclass(slots=True)
class ClassCoverage:
    """Coverage counters of one class; `name` is fully qualified with dots."""
    name: str
    counters: Dict[CounterEntity, Counter] = field(default_factory=dict)

    @property
    def package(self) -> str:
        return self.name.rpartition(".")[0]

    @property
    def simple_name(self) -> str:
        return self.name.rpartition(".")[2]

    def counter(self, entity: CounterEntity) -> Counter:
        return self.counters.get(entity, Counter())


@dataclass(slots=True)
class CoverageBundle:
    name: str
    classes: List[ClassCoverage] = field(default_factory=list)

    def packages(self) -> Dict[str, List[ClassCoverage]]:
        grouped: Dict[str, List[ClassCoverage]] = defaultdict(list)
        for c in sorted(self.classes, key=lambda c: c.name):
            grouped[c.package].append(c)
        return dict(sorted(grouped.items()))

    def counter(self, entity: CounterEntity) -> Counter:
        return total(self.classes, entity)


def total(classes: Iterable[ClassCoverage], entity: CounterEntity) -> Counter:
    result = Counter()
    for c in classes:
        result = result + c.counter(entity)
    return result


class CoverageSource(Protocol):
    """Anything that can produce the coverage of a finished campaign."""

    def read(self) -> CoverageBundle: ...
