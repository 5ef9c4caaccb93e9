from __future__ import annotations
from typing import Any, Dict, Iterable, List, Literal, Optional, Union
from typing_extensions import Annotated
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Numbers as authored (ints stay ints on round-trip)
Number = Union[int, float]

StatType = Literal["numeric", "enum", "boolean", "string", "calculated"]
CompareOp = Literal["<", ">", "<=", ">=", "==", "!="]
PreviewType = Literal["string", "img"]

STAT_TYPES = ("numeric", "enum", "boolean", "string", "calculated")
# Stat types that can hold a number in formulas, dice and replacements
VALUE_STAT_TYPES = frozenset({"numeric", "boolean", "enum", "calculated"})
MAX_ENUM_OPTIONS = 25

LOCALES = (
    "id", "en-US", "en-GB", "bg", "zh-CN", "zh-TW", "hr", "cs", "da", "nl", "fi", "fr",
    "de", "el", "hi", "hu", "it", "ja", "ko", "lt", "no", "pl", "pt-BR", "ro", "ru",
    "es-ES", "es-419", "sv-SE", "th", "tr", "uk", "vi",
)


class Localization(BaseModel):
    """
    Localized text: a required `default` plus any number of locale keys ("pt-BR", "en-US", ...).
    Locale keys are kept as extra fields so documents round-trip unchanged.
    """
    model_config = ConfigDict(extra="allow")

    default: str = ""

    def get(self, locale: str = "default") -> str:
        if locale and locale != "default":
            value = (self.model_extra or {}).get(locale)
            if value:
                return str(value)
        return self.default

    def translations(self) -> Dict[str, str]:
        return {k: str(v) for k, v in (self.model_extra or {}).items()}


# -----------------------------
# Dice / Replacements
# -----------------------------

class DiceCondition(BaseModel):
    value1: str = ""
    operator: CompareOp = "=="
    value2: str = ""


class Dice(BaseModel):
    expression: str = ""
    condition: Optional[DiceCondition] = None


class Replacement(BaseModel):
    key: int
    options: List[int] = Field(default_factory=list)


# -----------------------------
# Stats (discriminated by "type")
# -----------------------------

class StatBase(BaseModel):
    id: int
    name: Localization = Field(default_factory=Localization)
    emoji: Optional[str] = None
    edit_page: Optional[List[int]] = None  # section ids where the stat is editable


class NumericStat(StatBase):
    type: Literal["numeric"] = "numeric"
    min: Optional[Number] = None
    max: Optional[Number] = None
    dices: Optional[List[Dice]] = None
    replacements: Optional[List[Replacement]] = None


class EnumOption(BaseModel):
    value: int
    name: Localization = Field(default_factory=Localization)
    emoji: Optional[str] = None
    edit_page: Optional[List[int]] = None
    replacements: Optional[List[Replacement]] = None


class EnumStat(StatBase):
    type: Literal["enum"] = "enum"
    # inline option list, or the id of another enum stat whose options are reused
    options: Union[List[EnumOption], int] = Field(default_factory=list)
    dices: Optional[List[Dice]] = None
    replacements: Optional[List[Replacement]] = None

    @property
    def references_enum(self) -> Optional[int]:
        return self.options if isinstance(self.options, int) else None


class BooleanStat(StatBase):
    type: Literal["boolean"] = "boolean"
    dices: Optional[List[Dice]] = None
    replacements: Optional[List[Replacement]] = None


class StringStat(StatBase):
    type: Literal["string"] = "string"
    minLength: Optional[int] = None
    maxLength: Optional[int] = None


class CalculatedStat(StatBase):
    type: Literal["calculated"] = "calculated"
    formula: str = ""
    dices: Optional[List[Dice]] = None
    replacements: Optional[List[Replacement]] = None


Stat = Annotated[
    Union[NumericStat, EnumStat, BooleanStat, StringStat, CalculatedStat],
    Field(discriminator="type"),
]
StatAdapter = TypeAdapter(Stat)


# -----------------------------
# Sections / System
# -----------------------------

class SectionPreview(BaseModel):
    type: Optional[PreviewType] = None
    content: Localization = Field(default_factory=Localization)


class Section(BaseModel):
    id: int
    name: Localization = Field(default_factory=Localization)
    emoji: Optional[str] = None
    quick_edit_btn: bool = False
    preview: SectionPreview = Field(default_factory=SectionPreview)
    view_pages: List[int] = Field(default_factory=list)  # sections this one is shown together with


SectionAdapter = TypeAdapter(Section)


# -----------------------------
# Integrations
# -----------------------------

class SchemaOption(BaseModel):
    value: str
    label: str = ""


class SchemaEval(BaseModel):
    name: str = ""
    type: Literal["eval"] = "eval"
    options: List[SchemaOption] = Field(default_factory=list)


class IntegrationSchema(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: int
    name: Localization = Field(default_factory=Localization)
    description: Localization = Field(default_factory=Localization)
    fields: Optional[Dict[int, SchemaEval]] = None
    AutorizedModifierList: Optional[List[Any]] = None
    authorized_status_ids: List[int] = Field(default_factory=list)


class Initiative(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: Optional[Union[int, str]] = None  # the editor stores the stat id as a string

    def stat_id(self) -> Optional[int]:
        if isinstance(self.id, int):
            return self.id
        if isinstance(self.id, str) and self.id.strip().isdigit():
            return int(self.id)
        return None


class Integrations(BaseModel):
    """Bot-side settings. Unknown keys are kept so documents round-trip unchanged."""
    model_config = ConfigDict(extra="allow")
    iniciative: Optional[Initiative] = None
    atributes_roll: Optional[str] = None  # dice expression, may hold <stat:ID:value> tokens
    schemas: List[IntegrationSchema] = Field(default_factory=list)


IntegrationsAdapter = TypeAdapter(Integrations)


class SystemConfig(BaseModel):
    id: Optional[int] = None
    name: Localization = Field(default_factory=Localization)
    description: Localization = Field(default_factory=Localization)


class RPGSystem(BaseModel):
    config: SystemConfig = Field(default_factory=SystemConfig)
    stats: List[Stat] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    integrations: Optional[Integrations] = None

    def stat_by_id(self, stat_id: int) -> Optional[Stat]:
        return find_stat(self.stats, stat_id)

    def section_by_id(self, section_id: int) -> Optional[Section]:
        for sec in self.sections:
            if sec.id == section_id:
                return sec
        return None


def find_stat(stats: Iterable[Stat], stat_id: int) -> Optional[Stat]:
    # first match wins, duplicates are the validator's business
    for s in stats:
        if s.id == stat_id:
            return s
    return None


def resolve_enum_options(stat: EnumStat, stats: Iterable[Stat]) -> Optional[List[EnumOption]]:
    """
    Inline options, or the options of the referenced enum stat (one level of indirection only).
    Returns None when the reference cannot be resolved to an inline list.
    """
    if isinstance(stat.options, list):
        return stat.options
    target = find_stat(stats, stat.options)
    if isinstance(target, EnumStat) and isinstance(target.options, list):
        return target.options
    return None
