"""
Snapshot edits for the schema editor. Every function takes an RPGSystem and returns a new one;
the input snapshot is never touched (replace-and-revalidate).
"""
from __future__ import annotations
from typing import Iterable, List, Literal

from .dependencies import find_cycle
from .errors import CircularDependencyError, UnknownStatError
from .schema_models import (
    BooleanStat, CalculatedStat, EnumStat, Localization, NumericStat, RPGSystem, Section,
    SectionPreview, Stat, StatAdapter, StatType, StringStat, SystemConfig,
)

Direction = Literal[-1, 1]


def default_system() -> RPGSystem:
    """Starter schema shown to a new author."""
    return RPGSystem(
        config=SystemConfig(id=1, name=Localization(default="My System"),
                            description=Localization(default="Short description of the system.")),
        stats=[
            NumericStat(id=1, name=Localization(default="Strength"), min=0, max=10),
            BooleanStat(id=2, name=Localization(default="Trained in Stealth")),
            EnumStat(id=3, name=Localization(default="Class"), options=[]),
        ],
        sections=[
            Section(id=1, name=Localization(default="Summary"), quick_edit_btn=True,
                    preview=SectionPreview(type="string",
                                           content=Localization(default="A **short** summary of the character.")),
                    view_pages=[1]),
            Section(id=2, name=Localization(default="Attributes"), quick_edit_btn=True,
                    preview=SectionPreview(type="string", content=Localization(default="Attribute list...")),
                    view_pages=[1, 2]),
        ],
        integrations={"schemas": []},
    )


def next_id(items: Iterable) -> int:
    return max((item.id for item in items), default=0) + 1


def _copy(system: RPGSystem) -> RPGSystem:
    return system.model_copy(deep=True)


def _index_of(system: RPGSystem, stat_id: int) -> int:
    for i, s in enumerate(system.stats):
        if s.id == stat_id:
            return i
    raise UnknownStatError(stat_id)


def _swap(items: List, index: int, direction: Direction) -> bool:
    j = index + direction
    if index < 0 or index >= len(items) or j < 0 or j >= len(items):
        return False
    items[index], items[j] = items[j], items[index]
    return True


# -----------------------------
# Stats
# -----------------------------

def new_stat(kind: StatType, stat_id: int) -> Stat:
    name = Localization(default="New Stat")
    if kind == "numeric":
        return NumericStat(id=stat_id, name=name, min=0, max=10)
    if kind == "enum":
        return EnumStat(id=stat_id, name=name, options=[])
    if kind == "boolean":
        return BooleanStat(id=stat_id, name=name)
    if kind == "string":
        return StringStat(id=stat_id, name=name, minLength=0, maxLength=200)
    if kind == "calculated":
        return CalculatedStat(id=stat_id, name=name, formula="")
    raise ValueError(f"unknown stat type: {kind}")


def add_stat(system: RPGSystem, kind: StatType) -> RPGSystem:
    copy = _copy(system)
    copy.stats.append(new_stat(kind, next_id(copy.stats)))
    return copy


def update_stat(system: RPGSystem, index: int, stat: Stat) -> RPGSystem:
    copy = _copy(system)
    copy.stats[index] = stat.model_copy(deep=True)
    return copy


def remove_stat(system: RPGSystem, index: int) -> RPGSystem:
    copy = _copy(system)
    del copy.stats[index]
    return copy


def duplicate_stat(system: RPGSystem, index: int) -> RPGSystem:
    copy = _copy(system)
    original = copy.stats[index]
    data = original.model_dump(mode="json", exclude_none=True)
    data["id"] = next_id(copy.stats)
    data["name"] = {**data.get("name", {}), "default": f"{original.name.default or 'Stat'} (Copy)"}
    copy.stats.insert(index + 1, StatAdapter.validate_python(data))
    return copy


def move_stat(system: RPGSystem, index: int, direction: Direction) -> RPGSystem:
    copy = _copy(system)
    _swap(copy.stats, index, direction)
    return copy


# -----------------------------
# Formulas
# -----------------------------

def check_formula_edit(system: RPGSystem, stat_id: int, formula: str) -> None:
    """Raises CircularDependencyError if `formula` on `stat_id` would close a cycle."""
    path = find_cycle(stat_id, formula, system.stats)
    if path is not None:
        raise CircularDependencyError(stat_id, path)


def set_formula(system: RPGSystem, stat_id: int, formula: str) -> RPGSystem:
    """Pre-commit check: a formula that would introduce a cycle is refused, nothing is applied."""
    index = _index_of(system, stat_id)
    stat = system.stats[index]
    if not isinstance(stat, CalculatedStat):
        raise TypeError(f"stat {stat_id} is {stat.type}, only calculated stats have a formula")
    check_formula_edit(system, stat_id, formula)
    copy = _copy(system)
    copy.stats[index] = stat.model_copy(update={"formula": formula}, deep=True)
    return copy


def available_formula_stats(system: RPGSystem, stat_id: int) -> List[Stat]:
    """Stats that can be inserted into the formula of `stat_id` without creating a cycle."""
    current = system.stat_by_id(stat_id)
    formula = current.formula if isinstance(current, CalculatedStat) else ""
    out: List[Stat] = []
    for s in system.stats:
        if s.id == stat_id or isinstance(s, StringStat):
            continue
        if isinstance(s, CalculatedStat):
            trial = f"{formula} + <stat:{s.id}:value>"
            if find_cycle(stat_id, trial, system.stats) is not None:
                continue
        out.append(s)
    return out


# -----------------------------
# Sections
# -----------------------------

def add_section(system: RPGSystem) -> RPGSystem:
    copy = _copy(system)
    copy.sections.append(Section(
        id=next_id(copy.sections), name=Localization(default="New Section"), quick_edit_btn=False,
        preview=SectionPreview(type="string", content=Localization(default="")), view_pages=[],
    ))
    return copy


def update_section(system: RPGSystem, index: int, section: Section) -> RPGSystem:
    copy = _copy(system)
    copy.sections[index] = section.model_copy(deep=True)
    return copy


def remove_section(system: RPGSystem, index: int) -> RPGSystem:
    copy = _copy(system)
    del copy.sections[index]
    return copy


def move_section(system: RPGSystem, index: int, direction: Direction) -> RPGSystem:
    copy = _copy(system)
    _swap(copy.sections, index, direction)
    return copy
