from __future__ import annotations
from functools import lru_cache
import logging
import math
from typing import Any, Callable, Dict, Optional, Union

from py_expression_eval import Parser

from .errors import EvaluationError

logger = logging.getLogger(__name__)

Evaluator = Callable[[str], Union[int, float]]

# Single global parser; formulas only ever see literals after token substitution
_parser = Parser()

# Allowed math helpers (abs, sqrt, pow, round come with the parser)
_parser.functions["min"] = min
_parser.functions["max"] = max
_parser.functions["floor"] = math.floor
_parser.functions["ceil"] = math.ceil


# LRU-compiled AST cache
@lru_cache(maxsize=4096)
def _compile_expr(expr: str):
    return _parser.parse(expr)


def _normalize(value: Any) -> Union[int, float]:
    # ints stay exact at any size, only floats fold back to int
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    f = float(value)
    return int(f) if f.is_integer() else f


def eval_expr(expr: Union[str, int, float], variables: Optional[Dict[str, Any]] = None) -> Union[int, float]:
    """
    Evaluate an arithmetic expression (tokens already substituted by literals).
    Integral results come back as int. Any parser/evaluation failure raises EvaluationError.
    """
    if isinstance(expr, bool):
        return int(expr)
    if isinstance(expr, (int, float)):
        return expr
    text = str(expr).strip()
    if not text:
        raise EvaluationError(str(expr), "empty expression")
    try:
        ast = _compile_expr(text)
        value = ast.evaluate(dict(variables or {}))
        return _normalize(value)
    except Exception as e:  # the parser raises bare Exception on syntax errors
        logger.debug("evaluation failed for %r: %s", text, e)
        raise EvaluationError(text, str(e) or type(e).__name__) from e


def check_syntax(expr: str) -> Optional[str]:
    """Returns the parser's message for a malformed expression, or None when it parses."""
    try:
        _compile_expr(expr.strip())
    except Exception as e:
        return str(e) or type(e).__name__
    return None


def format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def expr_cache_info() -> str:
    info = _compile_expr.cache_info()
    return f"expr-cache: hits={info.hits}, misses={info.misses}, size={info.currsize}/{info.maxsize}"
