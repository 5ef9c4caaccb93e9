from __future__ import annotations
from dataclasses import dataclass
import logging
import operator
from typing import Callable, Optional, Sequence, Union

import d20

from .errors import EvaluationError
from .expr import Evaluator, eval_expr
from .schema_models import Dice, DiceCondition
from .tokens import substitute_stat_values

logger = logging.getLogger(__name__)

_COMPARE = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True)
class RollOutcome:
    output: str
    total: Union[int, float, None] = None


Roller = Callable[[str], RollOutcome]


def compare(op: str, left, right) -> bool:
    return bool(_COMPARE[op](left, right))


def roll_dice_str(expr: str) -> RollOutcome:
    """Roll a dice expression (e.g. "2d6+3", "4d6kh3") with d20; failures raise EvaluationError."""
    text = (expr or "").strip()
    if not text:
        raise EvaluationError(expr or "", "empty dice expression")
    try:
        result = d20.roll(text)
    except d20.RollError as e:
        logger.debug("roll failed for %r: %s", text, e)
        raise EvaluationError(text, str(e)) from e
    return RollOutcome(output=str(result), total=result.total)


def evaluate_condition(condition: DiceCondition,
                       value_of: Callable[[int], str],
                       evaluator: Optional[Evaluator] = None) -> bool:
    """
    Substitute <stat:ID:value> tokens in both operands via `value_of`, evaluate each operand and
    compare. Operands that fail to evaluate raise EvaluationError.
    """
    evaluate = evaluator or eval_expr
    left = evaluate(substitute_stat_values(condition.value1, value_of))
    right = evaluate(substitute_stat_values(condition.value2, value_of))
    return compare(condition.operator, left, right)


def select_dice(dices: Sequence[Dice],
                value_of: Callable[[int], str],
                evaluator: Optional[Evaluator] = None) -> Optional[Dice]:
    """
    First-match policy: the first entry without a condition, or whose condition holds, applies.
    A condition that cannot be evaluated counts as not matched.
    """
    for dice in dices:
        if dice.condition is None:
            return dice
        try:
            if evaluate_condition(dice.condition, value_of, evaluator):
                return dice
        except EvaluationError as e:
            logger.debug("dice condition skipped: %s", e)
    return None
