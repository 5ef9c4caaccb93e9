from __future__ import annotations
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from .dependencies import CycleChecker
from .errors import SchemaIssue, format_issue
from .expr import check_syntax
from .preview import MATH, sample_value
from .replacements import check_replacements
from .schema_models import (
    MAX_ENUM_OPTIONS, CalculatedStat, EnumStat, Integrations, IntegrationsAdapter, NumericStat,
    RPGSystem, Section, SectionAdapter, Stat, StatAdapter, StringStat, SystemConfig, find_stat,
)
from .tokens import SectionRef, StatRef, scan, stat_value_ids, substitute_stat_values

logger = logging.getLogger(__name__)

__all__ = ["validate_system", "format_issue", "SchemaIssue"]

# (index in the source list, parsed model or None, readable id or None, parse issues)
_Parsed = Tuple[int, Optional[BaseModel], Optional[int], List[SchemaIssue]]


def _pydantic_issues(e: ValidationError, prefix: str) -> List[SchemaIssue]:
    out: List[SchemaIssue] = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        path = f"{prefix}.{loc}" if loc else prefix
        out.append(SchemaIssue("StructuralError", path, err.get("msg", "invalid value"),
                               {"type": err.get("type")}))
    return out


def _parse_items(items: Sequence[Any], adapter: TypeAdapter, collection: str) -> List[_Parsed]:
    parsed: List[_Parsed] = []
    for idx, item in enumerate(items):
        if isinstance(item, BaseModel):
            parsed.append((idx, item, getattr(item, "id", None), []))
            continue
        raw_id = item.get("id") if isinstance(item, Mapping) else None
        readable_id = raw_id if isinstance(raw_id, int) and not isinstance(raw_id, bool) else None
        try:
            model = adapter.validate_python(item)
        except ValidationError as e:
            parsed.append((idx, None, readable_id, _pydantic_issues(e, f"{collection}[{idx}]")))
            continue
        parsed.append((idx, model, model.id, []))
    return parsed


def _check_config(config: Any, issues: List[SchemaIssue]) -> None:
    if isinstance(config, SystemConfig):
        cid, name_default = config.id, config.name.default
    elif isinstance(config, Mapping):
        cid = config.get("id")
        name = config.get("name")
        name_default = name.get("default") if isinstance(name, Mapping) else None
    else:
        issues.append(SchemaIssue("StructuralError", "config", "config is required"))
        return
    if cid is None:
        issues.append(SchemaIssue("StructuralError", "config.id", "config.id is required"))
    if not name_default:
        issues.append(SchemaIssue("StructuralError", "config.name.default", "config.name.default is required"))


def _collection(raw: Any, name: str, issues: List[SchemaIssue]) -> List[Any]:
    if isinstance(raw, (list, tuple)):
        return list(raw)
    issues.append(SchemaIssue("StructuralError", name, f"{name} must be a list"))
    return []


def _check_duplicate(collection: str, idx: int, item_id: Optional[int],
                     first_seen: Dict[int, int], issues: List[SchemaIssue]) -> None:
    if item_id is None:
        return
    if item_id in first_seen:
        issues.append(SchemaIssue(
            "DuplicateIdError", f"{collection}[{idx}].id",
            f"duplicate id {item_id} (first used at {collection}[{first_seen[item_id]}])",
            {"id": item_id, "indexes": [first_seen[item_id], idx]}))
    else:
        first_seen[item_id] = idx


def _check_stat_refs(text: str, stats: Sequence[Stat], path: str, what: str,
                     issues: List[SchemaIssue]) -> None:
    for dep in stat_value_ids(text):
        target = find_stat(stats, dep)
        if target is None:
            issues.append(SchemaIssue("UnresolvedReferenceError", path,
                                      f"{what} references missing stat: {dep}", {"stat_id": dep}))
        elif isinstance(target, StringStat):
            issues.append(SchemaIssue("TypeMismatchError", path,
                                      f"{what} references string stat: {dep}", {"stat_id": dep}))


def _check_calculated(stat: CalculatedStat, idx: int, stats: Sequence[Stat], checker: CycleChecker,
                      strict: bool, issues: List[SchemaIssue]) -> None:
    path = f"stats[{idx}].formula"
    if not stat.formula:
        issues.append(SchemaIssue("StructuralError", path, "formula is required"))
        return
    cycle = checker.find(stat.id, stat.formula)
    if cycle is not None:
        chain = " -> ".join(str(c) for c in cycle)
        issues.append(SchemaIssue("CircularDependencyError", path,
                                  f"circular dependency in formula ({chain})", {"cycle": cycle}))
    _check_stat_refs(stat.formula, stats, path, "formula", issues)
    if strict:
        payload = substitute_stat_values(stat.formula, lambda sid: sample_value(sid, stats, MATH))
        problem = check_syntax(payload)
        if problem is not None:
            issues.append(SchemaIssue("EvaluationError", path, f"formula does not parse: {problem}",
                                      {"expression": payload}))


def _check_enum(stat: EnumStat, idx: int, stats: Sequence[Stat], strict: bool,
                issues: List[SchemaIssue]) -> None:
    if isinstance(stat.options, int):
        if strict:
            target = find_stat(stats, stat.options)
            if target is None:
                issues.append(SchemaIssue("UnresolvedReferenceError", f"stats[{idx}].options",
                                          f"options reference missing stat: {stat.options}",
                                          {"stat_id": stat.options}))
            elif not isinstance(target, EnumStat) or not isinstance(target.options, list):
                issues.append(SchemaIssue("TypeMismatchError", f"stats[{idx}].options",
                                          f"options must reference an enum with its own options: {stat.options}",
                                          {"stat_id": stat.options}))
        return
    if len(stat.options) > MAX_ENUM_OPTIONS:
        issues.append(SchemaIssue("OptionLimitExceeded", f"stats[{idx}].options",
                                  f"exceeds the limit of {MAX_ENUM_OPTIONS} options ({len(stat.options)})",
                                  {"count": len(stat.options), "limit": MAX_ENUM_OPTIONS}))
    seen: set = set()
    for j, opt in enumerate(stat.options):
        if opt.value in seen:
            issues.append(SchemaIssue("DuplicateOptionValue", f"stats[{idx}].options[{j}].value",
                                      f"duplicate option value: {opt.value}", {"value": opt.value}))
        seen.add(opt.value)
        if not opt.name.default:
            issues.append(SchemaIssue("StructuralError", f"stats[{idx}].options[{j}].name.default",
                                      "option name.default is required"))


def _check_strict_stat(stat: Stat, idx: int, stats: Sequence[Stat], section_ids: set,
                       issues: List[SchemaIssue]) -> None:
    for k, dice in enumerate(getattr(stat, "dices", None) or []):
        dpath = f"stats[{idx}].dices[{k}]"
        _check_stat_refs(dice.expression, stats, f"{dpath}.expression", "dice", issues)
        if dice.condition is not None:
            _check_stat_refs(dice.condition.value1, stats, f"{dpath}.condition.value1", "condition", issues)
            _check_stat_refs(dice.condition.value2, stats, f"{dpath}.condition.value2", "condition", issues)
    issues.extend(check_replacements(stat, stats, f"stats[{idx}]"))
    for page in stat.edit_page or []:
        if page not in section_ids:
            issues.append(SchemaIssue("UnresolvedReferenceError", f"stats[{idx}].edit_page",
                                      f"edit_page references missing section: {page}", {"section_id": page}))


def _check_strict_section(sec: Section, idx: int, stats: Sequence[Stat], section_ids: set,
                          issues: List[SchemaIssue]) -> None:
    for page in sec.view_pages:
        if page not in section_ids:
            issues.append(SchemaIssue("UnresolvedReferenceError", f"sections[{idx}].view_pages",
                                      f"view_pages references missing section: {page}", {"section_id": page}))
    texts = {"default": sec.preview.content.default, **sec.preview.content.translations()}
    for locale, text in texts.items():
        for tok, _span in scan(text):
            if isinstance(tok, StatRef) and find_stat(stats, tok.id) is None:
                issues.append(SchemaIssue("UnresolvedReferenceError", f"sections[{idx}].preview.content.{locale}",
                                          f"preview references missing stat: {tok.id}", {"stat_id": tok.id}))
            elif isinstance(tok, SectionRef) and tok.id not in section_ids:
                issues.append(SchemaIssue("UnresolvedReferenceError", f"sections[{idx}].preview.content.{locale}",
                                          f"preview references missing section: {tok.id}", {"section_id": tok.id}))


def _parse_integrations(raw: Any, issues: List[SchemaIssue]) -> Optional[Integrations]:
    if raw is None or isinstance(raw, Integrations):
        return raw
    try:
        return IntegrationsAdapter.validate_python(raw)
    except ValidationError as e:
        issues.extend(_pydantic_issues(e, "integrations"))
        return None


def _check_strict_integrations(integrations: Integrations, stats: Sequence[Stat],
                               issues: List[SchemaIssue]) -> None:
    if integrations.atributes_roll:
        _check_stat_refs(integrations.atributes_roll, stats, "integrations.atributes_roll",
                         "attribute roll", issues)
    initiative = integrations.iniciative
    if initiative is not None and initiative.id not in (None, ""):
        stat_id = initiative.stat_id()
        if stat_id is None or find_stat(stats, stat_id) is None:
            issues.append(SchemaIssue("UnresolvedReferenceError", "integrations.iniciative.id",
                                      f"initiative references missing stat: {initiative.id}",
                                      {"stat_id": initiative.id}))
    for i, schema in enumerate(integrations.schemas):
        for j, status_id in enumerate(schema.authorized_status_ids):
            if find_stat(stats, status_id) is None:
                issues.append(SchemaIssue("UnresolvedReferenceError",
                                          f"integrations.schemas[{i}].authorized_status_ids[{j}]",
                                          f"schema authorizes missing stat: {status_id}",
                                          {"stat_id": status_id}))


def validate_system(schema: Union[RPGSystem, Mapping[str, Any]], *, strict: bool = False) -> List[SchemaIssue]:
    """
    Every structural, referential and type problem of a schema snapshot, in a stable order.
    Accepts a parsed RPGSystem or the raw decoded document; never raises.
    With strict=True, dices, replacements, enum references, section links, formula syntax and
    the stat references held by integrations are checked too.
    """
    issues: List[SchemaIssue] = []
    if isinstance(schema, RPGSystem):
        config, raw_stats, raw_sections = schema.config, schema.stats, schema.sections
        raw_integrations: Any = schema.integrations
    elif isinstance(schema, Mapping):
        config, raw_stats, raw_sections = schema.get("config"), schema.get("stats"), schema.get("sections")
        raw_integrations = schema.get("integrations")
    else:
        return [SchemaIssue("StructuralError", "", "schema must be an object")]

    _check_config(config, issues)
    stats_list = _collection(raw_stats, "stats", issues)
    sections_list = _collection(raw_sections, "sections", issues)

    parsed_stats = _parse_items(stats_list, StatAdapter, "stats")
    parsed_sections = _parse_items(sections_list, SectionAdapter, "sections")
    all_stats: List[Stat] = [m for _, m, _, _ in parsed_stats if m is not None]
    section_ids = {m.id for _, m, _, _ in parsed_sections if m is not None}
    checker = CycleChecker(all_stats)

    seen_stats: Dict[int, int] = {}
    for idx, stat, stat_id, parse_issues in parsed_stats:
        issues.extend(parse_issues)
        _check_duplicate("stats", idx, stat_id, seen_stats, issues)
        if stat is None:
            continue
        if not stat.name.default:
            issues.append(SchemaIssue("StructuralError", f"stats[{idx}].name.default", "name.default is required"))
        if isinstance(stat, NumericStat):
            if stat.min is not None and stat.max is not None and stat.min > stat.max:
                issues.append(SchemaIssue("RangeError", f"stats[{idx}]", f"min > max ({stat.min} > {stat.max})",
                                          {"min": stat.min, "max": stat.max}))
        elif isinstance(stat, EnumStat):
            _check_enum(stat, idx, all_stats, strict, issues)
        elif isinstance(stat, CalculatedStat):
            _check_calculated(stat, idx, all_stats, checker, strict, issues)
        if strict:
            _check_strict_stat(stat, idx, all_stats, section_ids, issues)

    seen_sections: Dict[int, int] = {}
    for idx, sec, sec_id, parse_issues in parsed_sections:
        issues.extend(parse_issues)
        _check_duplicate("sections", idx, sec_id, seen_sections, issues)
        if sec is None:
            continue
        if not sec.name.default:
            issues.append(SchemaIssue("StructuralError", f"sections[{idx}].name.default", "name.default is required"))
        if not sec.preview.type:
            issues.append(SchemaIssue("StructuralError", f"sections[{idx}].preview.type", "preview.type is required"))
        if strict:
            _check_strict_section(sec, idx, all_stats, section_ids, issues)

    integrations = _parse_integrations(raw_integrations, issues)
    if strict and integrations is not None:
        _check_strict_integrations(integrations, all_stats, issues)

    logger.debug("validation finished: %d issue(s)", len(issues))
    return issues
