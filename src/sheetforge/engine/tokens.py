"""
Token lexer for the reference grammar embedded in free text, formulas and dice expressions:

    <stat:ID:name|value|emoji>
    <section:ID:name|emoji>
    <math:EXPR>
    <dice:EXPR>

EXPR is a non-empty run of characters other than '>', except that complete stat/section
references may appear inside it (e.g. ``<math:<stat:1:value> + 2>``). Anything that does not
form a complete token is literal text; scanning never raises.
"""
from __future__ import annotations
from dataclasses import dataclass
import re
from typing import Callable, Iterator, List, Literal, Optional, Tuple, Union

StatProperty = Literal["name", "value", "emoji"]
SectionProperty = Literal["name", "emoji", "value"]

# stat and section references share one pattern; section:*:value lexes so it can be reported
_REF_RE = re.compile(r"<(stat|section):(\d+):(name|value|emoji)>")
_EXPR_OPEN_RE = re.compile(r"<(math|dice):")
_STAT_VALUE_RE = re.compile(r"<stat:(\d+):value>")


@dataclass(frozen=True)
class Span:
    start: int
    end: int

    def slice(self, text: str) -> str:
        return text[self.start:self.end]


@dataclass(frozen=True)
class StatRef:
    id: int
    property: StatProperty

    def render(self) -> str:
        return f"<stat:{self.id}:{self.property}>"


@dataclass(frozen=True)
class SectionRef:
    id: int
    property: SectionProperty

    def render(self) -> str:
        return f"<section:{self.id}:{self.property}>"


@dataclass(frozen=True)
class MathExpr:
    raw: str

    def render(self) -> str:
        return f"<math:{self.raw}>"


@dataclass(frozen=True)
class DiceExpr:
    raw: str

    def render(self) -> str:
        return f"<dice:{self.raw}>"


Token = Union[StatRef, SectionRef, MathExpr, DiceExpr]
Segment = Union[str, Tuple[Token, Span]]


def _match_ref(text: str, pos: int) -> Optional[Tuple[Token, int]]:
    m = _REF_RE.match(text, pos)
    if not m:
        return None
    kind, sid, prop = m.group(1), int(m.group(2)), m.group(3)
    if kind == "stat":
        return StatRef(sid, prop), m.end()
    return SectionRef(sid, prop), m.end()


def _match_expr(text: str, pos: int) -> Optional[Tuple[Token, int]]:
    m = _EXPR_OPEN_RE.match(text, pos)
    if not m:
        return None
    body_start = i = m.end()
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == ">":
            if i == body_start:
                return None  # empty body
            raw = text[body_start:i]
            tok = MathExpr(raw) if m.group(1) == "math" else DiceExpr(raw)
            return tok, i + 1
        if ch == "<":
            nested = _match_ref(text, i)
            if nested is not None:
                i = nested[1]
                continue
        i += 1
    return None  # unterminated


def _match_at(text: str, pos: int) -> Optional[Tuple[Token, int]]:
    return _match_ref(text, pos) or _match_expr(text, pos)


class TokenScan:
    """Restartable, lazy scan of one text; every iteration starts from the beginning."""

    def __init__(self, text: str):
        self.text = text or ""

    def __iter__(self) -> Iterator[Tuple[Token, Span]]:
        text = self.text
        pos = 0
        while True:
            i = text.find("<", pos)
            if i < 0:
                return
            hit = _match_at(text, i)
            if hit is None:
                pos = i + 1
                continue
            tok, end = hit
            yield tok, Span(i, end)
            pos = end


def scan(text: str) -> TokenScan:
    return TokenScan(text)


def segments(text: str) -> Iterator[Segment]:
    """Whole text as literal runs (str) interleaved with (token, span) pairs."""
    text = text or ""
    pos = 0
    for tok, span in scan(text):
        if span.start > pos:
            yield text[pos:span.start]
        yield tok, span
        pos = span.end
    if pos < len(text):
        yield text[pos:]


def iter_stat_refs(text: str, deep: bool = True) -> Iterator[StatRef]:
    """Stat references in order; with deep=True also those nested in math/dice bodies."""
    for tok, _span in scan(text):
        if isinstance(tok, StatRef):
            yield tok
        elif deep and isinstance(tok, (MathExpr, DiceExpr)):
            for nested, _ in scan(tok.raw):
                if isinstance(nested, StatRef):
                    yield nested


def stat_value_ids(text: str) -> List[int]:
    """Ids of every <stat:ID:value> reference, first-occurrence order, without repeats."""
    seen: List[int] = []
    for ref in iter_stat_refs(text):
        if ref.property == "value" and ref.id not in seen:
            seen.append(ref.id)
    return seen


def substitute_stat_values(text: str, replace: Callable[[int], str]) -> str:
    """Second-pass substitution used on math/dice payloads and dice conditions."""
    return _STAT_VALUE_RE.sub(lambda m: replace(int(m.group(1))), text or "")


def substitute_refs(text: str, replace: Callable[[Union[StatRef, SectionRef]], str]) -> str:
    """Replace every stat/section reference (outer level only) using `replace`."""
    return _REF_RE.sub(lambda m: replace(_match_ref(m.group(0), 0)[0]), text or "")


def contains_tokens(text: str) -> bool:
    return any(True for _ in scan(text))
