from __future__ import annotations
from typing import Iterable, List, Optional, Sequence

from .schema_models import VALUE_STAT_TYPES, Dice, Stat, find_stat
from .tokens import stat_value_ids
from .errors import SchemaIssue


def stats_used_in_dices(dices: Optional[Sequence[Dice]]) -> List[int]:
    """Ids referenced via <stat:ID:value> across dice expressions and both condition operands."""
    used: List[int] = []
    for dice in dices or []:
        texts = [dice.expression]
        if dice.condition is not None:
            texts += [dice.condition.value1, dice.condition.value2]
        for text in texts:
            for sid in stat_value_ids(text):
                if sid not in used:
                    used.append(sid)
    return used


def valid_replacement_options(stats: Iterable[Stat]) -> List[Stat]:
    return [s for s in stats if s.type in VALUE_STAT_TYPES]


def valid_replacement_keys(stat: Stat, stats: Iterable[Stat]) -> List[Stat]:
    used = set(stats_used_in_dices(getattr(stat, "dices", None)))
    return [s for s in valid_replacement_options(stats) if s.id in used]


def search_option_stats(stats: Iterable[Stat], query: str) -> List[Stat]:
    """Option stats whose default name, type or id contains `query` (case-insensitive)."""
    term = (query or "").strip().lower()
    options = valid_replacement_options(stats)
    if not term:
        return options
    return [s for s in options
            if term in s.name.default.lower() or term in s.type or term in str(s.id)]


def check_replacements(stat: Stat, stats: Sequence[Stat], path: str) -> List[SchemaIssue]:
    """Keys must be stats the dices actually read; options must be existing non-string stats."""
    issues: List[SchemaIssue] = []
    replacements = getattr(stat, "replacements", None) or []
    if not replacements:
        return issues
    used = stats_used_in_dices(getattr(stat, "dices", None))
    for i, rep in enumerate(replacements):
        rpath = f"{path}.replacements[{i}]"
        if rep.key not in used:
            issues.append(SchemaIssue(
                "UnresolvedReferenceError", f"{rpath}.key",
                f"replacement key {rep.key} is not used by any dice of stat {stat.id}",
                {"key": rep.key, "used": used}))
        for j, opt in enumerate(rep.options):
            target = find_stat(stats, opt)
            if target is None:
                issues.append(SchemaIssue(
                    "UnresolvedReferenceError", f"{rpath}.options[{j}]",
                    f"replacement option references missing stat: {opt}", {"stat_id": opt}))
            elif target.type not in VALUE_STAT_TYPES:
                issues.append(SchemaIssue(
                    "TypeMismatchError", f"{rpath}.options[{j}]",
                    f"replacement option references {target.type} stat: {opt}", {"stat_id": opt}))
    return issues
