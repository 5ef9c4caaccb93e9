"""
One-shot conversion of the legacy per-locale command/menu document into the current schema.

Legacy shape (abridged):
    i18n.<locale>.commands.config.{label, description}
    i18n.<locale>.commands.ficha.fields[{value, forMenu}]
    i18n.<locale>.stats{<id>: name}, i18n.<locale>.enums[{for, enum[{value, name}]}], i18n.<locale>.menu{<id>: name}
    commands.config.value, commands.menu{<id>: {emoji}}
    stats[{id, emoji?, menu?, canHoldValue?, dices?[{dice}], enum?[{value, emoji?}], replacements?[{id, replacedBy}]}]

Batch semantics: no partial output. Any error aborts the conversion and nothing is written.
"""
from __future__ import annotations
from pathlib import Path
import json
import logging
from typing import Any, Dict, List, Optional

from sheetforge.engine.loader import SystemAdapter, dumps_system
from sheetforge.engine.schema_models import RPGSystem

logger = logging.getLogger(__name__)

# legacy locale key -> current locale
LOCALE_MAPPING: Dict[str, str] = {
    "default": "en-US",
    "pt-BR": "pt-BR",
    "fr": "fr",
    "ko": "ko",
}


def _translated_locales(i18n: Dict[str, Any]):
    """(legacy key, locale) pairs whose text becomes a translation next to `default`."""
    for old_locale in i18n:
        locale = LOCALE_MAPPING.get(old_locale)
        if locale and locale != "en-US":
            yield old_locale, locale


def _localized(i18n: Dict[str, Any], default: str, pick) -> Dict[str, str]:
    out = {"default": default}
    for old_locale, locale in _translated_locales(i18n):
        value = pick(i18n[old_locale])
        if value:
            out[locale] = value
    return out


def _replacements(old_stat: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
    reps = old_stat.get("replacements")
    if reps is None:
        return None
    return [{"key": r["id"], "options": list(r["replacedBy"])} for r in reps]


def _enum_options(old_stat: Dict[str, Any], i18n: Dict[str, Any], edit_page) -> List[Dict[str, Any]]:
    stat_id = old_stat["id"]
    options = []
    for opt in old_stat["enum"]:
        name: Dict[str, str] = {"default": str(opt["value"])}
        for old_locale, block in i18n.items():
            locale = LOCALE_MAPPING.get(old_locale)
            enum_def = next((e for e in block.get("enums") or [] if stat_id in e["for"]), None)
            if enum_def is None:
                continue
            entry = next((e for e in enum_def["enum"] if e["value"] == opt["value"]), None)
            if entry is None:
                continue
            if locale == "en-US" or old_locale == "default":
                name["default"] = entry["name"]
            elif locale:
                name[locale] = entry["name"]
        options.append({
            "value": opt["value"],
            "name": name,
            "emoji": opt.get("emoji"),
            "edit_page": edit_page,
            "replacements": _replacements(old_stat),
        })
    return options


def _convert_stat(old_stat: Dict[str, Any], i18n: Dict[str, Any], default_block: Dict[str, Any]) -> Dict[str, Any]:
    sid = str(old_stat["id"])
    base = {
        "id": old_stat["id"],
        "name": _localized(i18n, default_block["stats"].get(sid) or f"Stat {sid}",
                           lambda block: block["stats"].get(sid)),
        "emoji": old_stat.get("emoji"),
        "edit_page": [old_stat["menu"]] if old_stat.get("menu") is not None else None,
    }
    dices = old_stat.get("dices") or []
    # type inference: enum list > dices > canHoldValue == False > numeric
    if old_stat.get("enum") is not None:
        return {
            **base, "type": "enum",
            "options": _enum_options(old_stat, i18n, base["edit_page"]),
            "dices": [{"expression": d["dice"]} for d in dices] if old_stat.get("dices") is not None else None,
            "replacements": _replacements(old_stat),
        }
    if dices:
        return {**base, "type": "calculated", "formula": dices[0]["dice"],
                "dices": [{"expression": d["dice"]} for d in dices]}
    if old_stat.get("canHoldValue") is False:
        return {**base, "type": "boolean"}
    return {**base, "type": "numeric"}


def _field_for_menu(block: Dict[str, Any], menu_id: int) -> Optional[Dict[str, Any]]:
    for field in block["commands"]["ficha"]["fields"]:
        if menu_id in field["forMenu"]:
            return field
    return None


def _convert_section(menu_key: str, i18n: Dict[str, Any], default_block: Dict[str, Any],
                     menu_styles: Dict[str, Any]) -> Dict[str, Any]:
    menu_id = int(menu_key)
    field = _field_for_menu(default_block, menu_id)

    def _translated_field(block):
        f = _field_for_menu(block, menu_id)
        return f["value"] if f else None

    return {
        "id": menu_id,
        "name": _localized(i18n, default_block["menu"][menu_key], lambda block: block["menu"].get(menu_key)),
        "quick_edit_btn": True,
        "emoji": (menu_styles.get(menu_key) or {}).get("emoji"),
        "preview": {
            "type": "string",
            "content": _localized(i18n, (field or {}).get("value") or f"Section {menu_key}", _translated_field),
        },
        "view_pages": [menu_id],
    }


def convert_legacy(old: Dict[str, Any]) -> RPGSystem:
    i18n: Dict[str, Any] = old["i18n"]
    default_block = i18n.get("default") or i18n[next(iter(i18n))]
    commands = old["commands"]

    config = {
        "id": commands["config"]["value"],
        "name": _localized(i18n, default_block["commands"]["config"]["label"],
                           lambda block: block["commands"]["config"]["label"]),
        "description": _localized(i18n, default_block["commands"]["config"]["description"],
                                  lambda block: block["commands"]["config"]["description"]),
    }
    stats = [_convert_stat(s, i18n, default_block) for s in old["stats"]]
    sections = [_convert_section(k, i18n, default_block, commands.get("menu") or {})
                for k in default_block["menu"]]

    document = {"config": config, "stats": _drop_none(stats), "sections": _drop_none(sections)}
    return SystemAdapter.validate_python(document)


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value


def run_import(src: Path, dst: Path, indent: int = 2) -> RPGSystem:
    """Read `src`, convert, write `dst`. Exceptions propagate: the batch either fully succeeds or writes nothing."""
    logger.info("converting legacy document %s", src)
    old = json.loads(Path(src).read_text(encoding="utf-8"))
    system = convert_legacy(old)
    text = dumps_system(system, indent=indent)
    Path(dst).write_text(text, encoding="utf-8")
    logger.info("system %r: %d stat(s), %d section(s) -> %s",
                system.config.name.default, len(system.stats), len(system.sections), dst)
    return system
