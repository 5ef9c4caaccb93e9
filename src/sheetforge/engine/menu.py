from __future__ import annotations
from typing import Any, Dict, Iterable, List, Tuple

from .schema_models import Section, Stat
from .tokens import SectionRef, StatRef

MATH_EDITOR = "__MATH_EDITOR__"
DICE_EDITOR = "__DICE_EDITOR__"

MenuItem = Dict[str, Any]


def _stat_label(stat: Stat) -> str:
    return stat.name.default or f"Stat {stat.id}"


def _section_label(section: Section) -> str:
    return section.name.default or f"Section {section.id}"


def _stat_children(stat: Stat) -> Dict[str, MenuItem]:
    return {
        "name": {"label": "Name", "value": StatRef(stat.id, "name").render(), "icon": "🏷️"},
        "value": {"label": "Value", "value": StatRef(stat.id, "value").render(), "icon": "🔢"},
        "emoji": {"label": "Emoji", "value": StatRef(stat.id, "emoji").render(), "icon": "😀"},
    }


def _section_children(section: Section) -> Dict[str, MenuItem]:
    return {
        "name": {"label": "Name", "value": SectionRef(section.id, "name").render(), "icon": "🏷️"},
        "emoji": {"label": "Emoji", "value": SectionRef(section.id, "emoji").render(), "icon": "😀"},
    }


def build_reference_menu(stats: Iterable[Stat], sections: Iterable[Section]) -> Dict[str, MenuItem]:
    """
    Tree used by the "/" insertion menu: category -> entity -> property, leaves carry the token
    text to insert. Rebuilt from the snapshot on every call.
    """
    return {
        "stats": {
            "label": "Stats", "icon": "📊",
            "children": {str(s.id): {"label": _stat_label(s), "icon": "⚡", "children": _stat_children(s)}
                         for s in stats},
        },
        "sections": {
            "label": "Sections", "icon": "📄",
            "children": {str(sec.id): {"label": _section_label(sec), "icon": "📋",
                                       "children": _section_children(sec)}
                         for sec in sections},
        },
        "math": {"label": "Math expression", "value": MATH_EDITOR, "icon": "🧮"},
        "dice": {"label": "Dice", "value": DICE_EDITOR, "icon": "🎲"},
    }


def menu_level(menu: Dict[str, MenuItem], path: Iterable[str]) -> Dict[str, MenuItem]:
    current = menu
    for key in path:
        current = (current.get(key) or {}).get("children") or {}
    return current


def search_references(stats: Iterable[Stat], sections: Iterable[Section], query: str) -> List[Tuple[str, MenuItem]]:
    """Flat search across every stat and section (by name or id) plus the expression editors."""
    term = (query or "").lower()
    results: List[Tuple[str, MenuItem]] = []
    for s in stats:
        label = _stat_label(s)
        if term in label.lower() or term in str(s.id):
            for prop, item in _stat_children(s).items():
                results.append((f"stat-{s.id}-{prop}", {**item, "label": f"📊 {label} → {item['label']}"}))
    for sec in sections:
        label = _section_label(sec)
        if term in label.lower() or term in str(sec.id):
            for prop, item in _section_children(sec).items():
                results.append((f"section-{sec.id}-{prop}", {**item, "label": f"📄 {label} → {item['label']}"}))
    if term in "math":
        results.append(("math-editor", {"label": "🧮 Math expression → Open editor", "value": MATH_EDITOR, "icon": "✏️"}))
    if term in "dice":
        results.append(("dice-editor", {"label": "🎲 Dice → Open editor", "value": DICE_EDITOR, "icon": "🎯"}))
    return results
