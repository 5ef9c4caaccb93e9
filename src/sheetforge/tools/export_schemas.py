from __future__ import annotations
from pathlib import Path
import json
import logging
from typing import Dict, Iterable, List, Optional

from pydantic import TypeAdapter

from sheetforge.engine.schema_models import (
    Dice, EnumOption, IntegrationsAdapter, Replacement, RPGSystem, SectionAdapter, StatAdapter,
)

logger = logging.getLogger(__name__)

# document name -> adapter; editors bind to these when authoring a system by hand
SCHEMAS: Dict[str, TypeAdapter] = {
    "RPGSystem": TypeAdapter(RPGSystem),
    "Stat": StatAdapter,
    "Section": SectionAdapter,
    "Dice": TypeAdapter(Dice),
    "Replacement": TypeAdapter(Replacement),
    "EnumOption": TypeAdapter(EnumOption),
    "Integrations": IntegrationsAdapter,
}


def export_schemas(out_dir: Path, names: Optional[Iterable[str]] = None) -> List[Path]:
    """
    Write `<Name>.schema.json` for each requested document type (all of them by default).
    Raises ValueError for a name that is not exported, before anything is written.
    """
    selected = list(names) if names else list(SCHEMAS)
    unknown = [n for n in selected if n not in SCHEMAS]
    if unknown:
        raise ValueError(f"unknown schema(s): {', '.join(unknown)} (known: {', '.join(SCHEMAS)})")
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name in selected:
        schema = SCHEMAS[name].json_schema()
        schema.setdefault("title", name)
        target = out_dir / f"{name}.schema.json"
        target.write_text(json.dumps(schema, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("wrote %s", target)
        written.append(target)
    return written
