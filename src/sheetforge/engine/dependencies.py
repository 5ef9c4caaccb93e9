from __future__ import annotations
from typing import Dict, Iterable, Iterator, List, Optional, Set

from .schema_models import CalculatedStat, Stat
from .tokens import stat_value_ids

DependencyGraph = Dict[int, List[int]]


def find_stat_dependencies(formula: str) -> List[int]:
    """Direct dependencies of a formula: ids of <stat:ID:value> tokens, first occurrence order."""
    return stat_value_ids(formula)


def build_dependency_graph(stats: Iterable[Stat]) -> DependencyGraph:
    graph: DependencyGraph = {}
    for s in stats:
        if isinstance(s, CalculatedStat) and s.id not in graph:
            graph[s.id] = find_stat_dependencies(s.formula)
    return graph


def _first_by_id(stats: Iterable[Stat]) -> Dict[int, Stat]:
    out: Dict[int, Stat] = {}
    for s in stats:
        out.setdefault(s.id, s)
    return out


class CycleChecker:
    """
    Cycle detection over one snapshot of stats.

    The walk is an explicit-stack DFS, so formula chains of any length are fine. `on_path`
    holds only the ids on the active branch (added on push, removed on pop), so a node shared
    by sibling branches (diamond) is never mistaken for a back-edge.

    Stats fully explored without reaching a cycle are skipped when met again. Across calls this
    only holds for stored formulas, so a proposed formula is walked with a fresh set.
    """

    def __init__(self, all_stats: Iterable[Stat]):
        self._lookup = _first_by_id(all_stats)
        self._acyclic: Set[int] = set()
        self._deps: Dict[int, List[int]] = {}

    def _is_stored(self, stat_id: int, formula: str) -> bool:
        stat = self._lookup.get(stat_id)
        return isinstance(stat, CalculatedStat) and stat.formula == formula

    def _stored_deps(self, stat: CalculatedStat) -> List[int]:
        deps = self._deps.get(stat.id)
        if deps is None:
            deps = self._deps[stat.id] = find_stat_dependencies(stat.formula)
        return deps

    def find(self, target_id: int, formula: str) -> Optional[List[int]]:
        """
        Walk from `target_id` using `formula` as its (possibly proposed) formula.
        Returns the offending path (e.g. [5, 5] or [1, 2, 1]) or None.
        """
        formula = formula or ""
        stored = self._is_stored(target_id, formula)
        acyclic = self._acyclic if stored else set()

        path: List[int] = [target_id]
        on_path: Set[int] = {target_id}
        stack: List[Iterator[int]] = [iter(find_stat_dependencies(formula))]
        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                done = path.pop()
                on_path.discard(done)
                acyclic.add(done)
                continue
            if dep == target_id:
                return path + [dep]
            dep_stat = self._lookup.get(dep)
            if not isinstance(dep_stat, CalculatedStat) or dep in acyclic:
                continue
            if dep in on_path:
                return path + [dep]
            path.append(dep)
            on_path.add(dep)
            stack.append(iter(self._stored_deps(dep_stat)))
        return None


def find_cycle(target_id: int, formula: str, all_stats: Iterable[Stat]) -> Optional[List[int]]:
    return CycleChecker(all_stats).find(target_id, formula)


def has_cycle(target_id: int, formula: str, all_stats: Iterable[Stat]) -> bool:
    return find_cycle(target_id, formula, all_stats) is not None
