from __future__ import annotations
from pathlib import Path
from typing import Literal, Optional
from pydantic import BaseModel

SETTINGS_PATH = Path.home() / ".sheetforge" / "settings.json"

class Settings(BaseModel):
    default_locale: str = "default"                      # locale used to pick names in previews
    diagnostics_language: Literal["en", "pt-BR"] = "en"  # language of inline preview diagnostics
    strict_validation: bool = False                      # also check dices, replacements, section links
    json_indent: int = 2

def load_settings(path: Optional[Path] = None) -> Settings:
    path = path or SETTINGS_PATH
    if path.exists():
        return Settings.model_validate_json(path.read_text(encoding="utf-8"))
    s = Settings()
    save_settings(s, path)
    return s

def save_settings(s: Settings, path: Optional[Path] = None) -> None:
    path = path or SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(s.model_dump_json(indent=2), encoding="utf-8")
