import pytest
from sheetforge.engine.dice import RollOutcome, compare, evaluate_condition, roll_dice_str, select_dice
from sheetforge.engine.errors import EvaluationError
from sheetforge.engine.expr import check_syntax, eval_expr, format_number
from sheetforge.engine.schema_models import Dice, DiceCondition

def test_eval_expr_basic_math():
    assert eval_expr("3 + 2") == 5
    assert isinstance(eval_expr("3 + 2"), int)
    assert eval_expr("7 / 2") == 3.5
    assert eval_expr("floor(7 / 2)") == 3
    assert eval_expr("ceil(7 / 2)") == 4
    assert eval_expr(4) == 4

def test_eval_expr_errors_are_evaluation_errors():
    with pytest.raises(EvaluationError):
        eval_expr("")
    with pytest.raises(EvaluationError) as exc:
        eval_expr("2 * * 3")
    assert exc.value.expression == "2 * * 3"

def test_check_syntax():
    assert check_syntax("1 + 2") is None
    assert check_syntax("2 * * 3")

def test_format_number():
    assert format_number(5.0) == "5"
    assert format_number(2.5) == "2.5"
    assert format_number(3) == "3"

def test_roll_dice_str_with_d20():
    outcome = roll_dice_str("1d1+2")
    assert outcome.total == 3
    assert "3" in outcome.output

def test_roll_dice_str_rejects_garbage():
    with pytest.raises(EvaluationError):
        roll_dice_str("")
    with pytest.raises(EvaluationError):
        roll_dice_str("banana(")

def test_compare_operators():
    assert compare("<", 1, 2)
    assert compare(">=", 2, 2)
    assert compare("!=", 1, 2)
    assert not compare("==", 1, 2)

def test_evaluate_condition_substitutes_values():
    cond = DiceCondition(value1="<stat:1:value>", operator=">=", value2="10")
    assert evaluate_condition(cond, lambda sid: "12")
    assert not evaluate_condition(cond, lambda sid: "3")

def test_select_dice_first_match():
    dices = [
        Dice(expression="1d20", condition=DiceCondition(value1="<stat:1:value>", operator=">", value2="5")),
        Dice(expression="1d6"),
        Dice(expression="1d4"),
    ]
    assert select_dice(dices, lambda sid: "8").expression == "1d20"
    assert select_dice(dices, lambda sid: "2").expression == "1d6"
    assert select_dice([], lambda sid: "2") is None

def test_select_dice_skips_conditions_that_fail_to_evaluate():
    dices = [
        Dice(expression="1d20", condition=DiceCondition(value1="oops(", operator="==", value2="1")),
        Dice(expression="1d8"),
    ]
    assert select_dice(dices, lambda sid: "1").expression == "1d8"

def test_roll_outcome_defaults():
    assert RollOutcome("x").total is None

def test_eval_expr_keeps_big_integers_exact():
    assert eval_expr("2^2000") == 2 ** 2000
    assert eval_expr("2^60 + 1") == 2 ** 60 + 1
    assert isinstance(eval_expr("2^60 + 1"), int)
    assert eval_expr("10 / 4 * 2") == 5
    assert isinstance(eval_expr("10 / 4 * 2"), int)
