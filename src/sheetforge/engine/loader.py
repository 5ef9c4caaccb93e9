from __future__ import annotations
from pathlib import Path
import json
import logging
from typing import Any, Dict

import yaml
from pydantic import TypeAdapter

from .schema_models import RPGSystem

logger = logging.getLogger(__name__)

SystemAdapter = TypeAdapter(RPGSystem)


def load_raw(path: Path) -> Dict[str, Any]:
    """Decoded document (JSON, or YAML by extension) without any model validation."""
    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text) or {}
    return json.loads(text)


def load_system(path: Path) -> RPGSystem:
    """Parse a schema document; structurally invalid documents raise pydantic.ValidationError."""
    data = load_raw(path)
    system = SystemAdapter.validate_python(data)
    logger.info("loaded %s: %d stat(s), %d section(s)", path, len(system.stats), len(system.sections))
    return system


def loads_system(text: str) -> RPGSystem:
    return SystemAdapter.validate_json(text)


def system_to_document(system: RPGSystem) -> Dict[str, Any]:
    # unset optional fields are omitted so import/export round-trips unchanged
    return system.model_dump(mode="json", exclude_none=True)


def dumps_system(system: RPGSystem, indent: int = 2) -> str:
    return json.dumps(system_to_document(system), indent=indent, ensure_ascii=False)


def save_system(system: RPGSystem, path: Path, indent: int = 2) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_system(system, indent=indent), encoding="utf-8")
    logger.info("saved %s", path)


def export_filename(system: RPGSystem) -> str:
    return f"rpg-system-{system.config.name.default or system.config.id}.json"
