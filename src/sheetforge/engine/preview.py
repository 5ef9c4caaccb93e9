"""
Template resolver: renders free text with every token replaced by a representative value.

Nothing here rolls real dice on its own or evaluates formulas recursively; stat values are
deterministic samples chosen per call site (display text, math payloads, dice payloads, dice
conditions). Each token is resolved independently, so a bad token only degrades its own
substring into a bracketed diagnostic.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Sequence, Union

from .dice import RollOutcome, Roller, compare, roll_dice_str, select_dice
from .expr import Evaluator, eval_expr, format_number
from .schema_models import (
    BooleanStat, CalculatedStat, Dice, EnumStat, NumericStat, RPGSystem, Stat, StringStat,
    find_stat, resolve_enum_options,
)
from .tokens import (
    DiceExpr, MathExpr, SectionRef, StatRef, Token, contains_tokens, segments, substitute_refs,
    substitute_stat_values,
)

logger = logging.getLogger(__name__)

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "stat_not_found": "[Stat {id} not found]",
        "section_not_found": "[Section {id} not found]",
        "unknown_property": "[unknown property {prop}]",
        "calculated": "[calculated]",
        "math_error": "[Error: {expr}]",
        "dice_error": "[Dice error: {message}]",
        "stat_fallback": "Stat {id}",
        "section_fallback": "Section {id}",
        "option_fallback": "Option 1",
    },
    "pt-BR": {
        "stat_not_found": "[Stat {id} não encontrado]",
        "section_not_found": "[Seção {id} não encontrada]",
        "unknown_property": "[propriedade {prop} desconhecida]",
        "calculated": "[calculado]",
        "math_error": "[Erro: {expr}]",
        "dice_error": "[Erro dados: {message}]",
        "stat_fallback": "Stat {id}",
        "section_fallback": "Seção {id}",
        "option_fallback": "Opção 1",
    },
}


def _msg(language: str, key: str, **kw) -> str:
    table = MESSAGES.get(language) or MESSAGES["en"]
    return table[key].format(**kw)


@dataclass(frozen=True)
class SampleProfile:
    """Sample values substituted for <stat:ID:value> inside one kind of payload."""
    name: str
    missing: str
    string: str
    boolean: str
    calculated: str
    enum_fallback: str
    numeric_default: Union[int, float]
    numeric_bound: str = "min"  # "min" | "max"
    enum_index: int = 0


MATH = SampleProfile("math", missing="0", string="0", boolean="0", calculated="0",
                     enum_fallback="1", numeric_default=1)
DICE = SampleProfile("dice", missing="3", string="3", boolean="1", calculated="3",
                     enum_fallback="2", numeric_default=3)
# right-hand side of a dice condition: the other end of the range
CONDITION_HIGH = SampleProfile("condition_high", missing="3", string="5", boolean="0", calculated="5",
                               enum_fallback="1", numeric_default=5, numeric_bound="max", enum_index=1)


def sample_value(stat_id: int, stats: Sequence[Stat], profile: SampleProfile = MATH) -> str:
    stat = find_stat(stats, stat_id)
    if stat is None:
        return profile.missing
    if isinstance(stat, NumericStat):
        bound = stat.min if profile.numeric_bound == "min" else stat.max
        return format_number(bound if bound is not None else profile.numeric_default)
    if isinstance(stat, BooleanStat):
        return profile.boolean
    if isinstance(stat, EnumStat):
        options = resolve_enum_options(stat, stats) or []
        if len(options) > profile.enum_index:
            return str(options[profile.enum_index].value)
        return profile.enum_fallback
    if isinstance(stat, CalculatedStat):
        return profile.calculated
    return profile.string


@dataclass(frozen=True)
class ConditionPreview:
    left: str
    operator: str
    right: str
    result: Optional[bool]
    error: Optional[str] = None


class TemplateResolver:
    def __init__(self, system: RPGSystem, *, locale: str = "default",
                 evaluator: Optional[Evaluator] = None, roller: Optional[Roller] = None,
                 language: str = "en"):
        self.system = system
        self.locale = locale
        self.evaluator: Evaluator = evaluator or eval_expr
        self.roller: Roller = roller or roll_dice_str
        self.language = language

    # -- references ---------------------------------------------------------

    def _display_value(self, stat: Stat) -> str:
        if isinstance(stat, NumericStat):
            return format_number(stat.min if stat.min is not None else 1)
        if isinstance(stat, StringStat):
            return "string"
        if isinstance(stat, BooleanStat):
            return "false"
        if isinstance(stat, EnumStat):
            options = resolve_enum_options(stat, self.system.stats)
            if options:
                return options[0].name.get(self.locale) or _msg(self.language, "option_fallback")
            if stat.references_enum is not None and stat.references_enum > 0:
                return f"[ref: {stat.references_enum}]"
            return "enum"
        if isinstance(stat, CalculatedStat):
            return _msg(self.language, "calculated")
        return "value"

    def resolve_ref(self, ref: Union[StatRef, SectionRef]) -> str:
        lang = self.language
        if isinstance(ref, StatRef):
            stat = self.system.stat_by_id(ref.id)
            if stat is None:
                return _msg(lang, "stat_not_found", id=ref.id)
            if ref.property == "name":
                return stat.name.get(self.locale) or _msg(lang, "stat_fallback", id=ref.id)
            if ref.property == "emoji":
                return stat.emoji or ""
            if ref.property == "value":
                return self._display_value(stat)
            return _msg(lang, "unknown_property", prop=ref.property)
        section = self.system.section_by_id(ref.id)
        if section is None:
            return _msg(lang, "section_not_found", id=ref.id)
        if ref.property == "name":
            return section.name.get(self.locale) or _msg(lang, "section_fallback", id=ref.id)
        if ref.property == "emoji":
            return section.emoji or ""
        return _msg(lang, "unknown_property", prop=ref.property)

    # -- payloads -----------------------------------------------------------

    def prepare_payload(self, raw: str, profile: SampleProfile) -> str:
        """Numeric samples for nested <stat:ID:value>, display text for other nested references."""
        stats = self.system.stats
        numeric = substitute_stat_values(raw, lambda sid: sample_value(sid, stats, profile))
        return substitute_refs(numeric, self.resolve_ref)

    def evaluate_math(self, raw: str) -> str:
        payload = self.prepare_payload(raw, MATH)
        try:
            return format_number(self.evaluator(payload))
        except Exception as e:  # collaborator failures stay local to this token
            logger.debug("math token %r failed: %s", raw, e)
            return _msg(self.language, "math_error", expr=raw)

    def roll_dice(self, raw: str) -> str:
        payload = self.prepare_payload(raw, DICE)
        try:
            outcome: RollOutcome = self.roller(payload)
        except Exception as e:
            logger.debug("dice token %r failed: %s", raw, e)
            return _msg(self.language, "dice_error", message=getattr(e, "message", None) or str(e) or raw)
        return f"🎲 {outcome.output}"

    def resolve(self, token: Token) -> str:
        if isinstance(token, (StatRef, SectionRef)):
            return self.resolve_ref(token)
        if isinstance(token, MathExpr):
            return self.evaluate_math(token.raw)
        if isinstance(token, DiceExpr):
            return self.roll_dice(token.raw)
        return ""

    def render(self, text: str) -> str:
        if not contains_tokens(text):
            return text or ""
        out: List[str] = []
        for seg in segments(text):
            if isinstance(seg, str):
                out.append(seg)
            else:
                out.append(self.resolve(seg[0]))
        return "".join(out)

    # -- dice lists ---------------------------------------------------------

    def preview_condition(self, dice: Dice) -> Optional[ConditionPreview]:
        cond = dice.condition
        if cond is None:
            return None
        stats = self.system.stats
        left = substitute_stat_values(cond.value1, lambda sid: sample_value(sid, stats, DICE))
        right = substitute_stat_values(cond.value2, lambda sid: sample_value(sid, stats, CONDITION_HIGH))
        try:
            lv, rv = self.evaluator(left), self.evaluator(right)
        except Exception as e:
            return ConditionPreview(left, cond.operator, right, None, str(e))
        return ConditionPreview(format_number(lv), cond.operator, format_number(rv),
                                compare(cond.operator, lv, rv))

    def preview_stat_roll(self, stat: Stat) -> Optional[str]:
        """Pick the applicable dice of `stat` against sample values and render its roll."""
        dices = getattr(stat, "dices", None) or []
        stats = self.system.stats
        chosen = select_dice(dices, lambda sid: sample_value(sid, stats, DICE), self.evaluator)
        if chosen is None:
            return None
        return self.roll_dice(chosen.expression)

    # -- integrations -------------------------------------------------------

    def preview_attributes_roll(self) -> Optional[str]:
        integrations = self.system.integrations
        if integrations is None or not integrations.atributes_roll:
            return None
        return self.roll_dice(integrations.atributes_roll)

    def preview_initiative_roll(self) -> Optional[str]:
        """Roll of the stat picked as initiative, None when unset or unresolved."""
        integrations = self.system.integrations
        if integrations is None or integrations.iniciative is None:
            return None
        stat_id = integrations.iniciative.stat_id()
        stat = self.system.stat_by_id(stat_id) if stat_id is not None else None
        if stat is None:
            return None
        return self.preview_stat_roll(stat)


def render_preview(text: str, system: RPGSystem, *, locale: str = "default",
                   evaluator: Optional[Evaluator] = None, roller: Optional[Roller] = None,
                   language: str = "en") -> str:
    return TemplateResolver(system, locale=locale, evaluator=evaluator, roller=roller,
                            language=language).render(text)
