import pytest
from sheetforge.engine.dice import RollOutcome
from sheetforge.engine.errors import EvaluationError
from sheetforge.engine.expr import eval_expr, format_number
from sheetforge.engine.preview import (
    CONDITION_HIGH, DICE, MATH, TemplateResolver, render_preview, sample_value,
)
from sheetforge.engine.schema_models import (
    BooleanStat, CalculatedStat, Dice, DiceCondition, EnumOption, EnumStat, Integrations, Localization,
    NumericStat, RPGSystem, Section, SectionPreview, StringStat,
)

@pytest.fixture
def system():
    return RPGSystem(
        config={"id": 1, "name": {"default": "Test"}},
        stats=[
            NumericStat(id=1, name=Localization(**{"default": "Strength", "pt-BR": "Força"}), emoji="💪",
                        min=3, max=8),
            StringStat(id=2, name={"default": "Notes"}),
            BooleanStat(id=3, name={"default": "Trained"}),
            EnumStat(id=4, name={"default": "Class"},
                     options=[EnumOption(value=7, name={"default": "Warrior"}),
                              EnumOption(value=9, name={"default": "Mage"})]),
            EnumStat(id=5, name={"default": "Subclass"}, options=4),
            EnumStat(id=6, name={"default": "Broken"}, options=42),
            CalculatedStat(id=7, name={"default": "Attack"}, formula="<stat:1:value> + 2",
                           dices=[Dice(expression="1d20 + <stat:1:value>",
                                       condition=DiceCondition(value1="<stat:1:value>", operator=">=", value2="10")),
                                  Dice(expression="1d6 + <stat:1:value>")]),
        ],
        sections=[Section(id=1, name={"default": "Main"}, emoji="📜",
                          preview=SectionPreview(type="string", content={"default": ""}))],
    )

class RecordingRoller:
    def __init__(self):
        self.payloads = []

    def __call__(self, expr):
        self.payloads.append(expr)
        return RollOutcome(output=f"{expr} = `4`", total=4)

def test_missing_stat_renders_bracketed_diagnostic(system):
    assert render_preview("<stat:99:value>", system) == "[Stat 99 not found]"
    assert render_preview("<section:99:name>", system) == "[Section 99 not found]"

def test_math_uses_numeric_minimum(system):
    seen = []

    def evaluator(expr):
        seen.append(expr)
        return eval_expr(expr)

    out = render_preview("<math:<stat:1:value> + 2>", system, evaluator=evaluator)
    assert seen == ["3 + 2"]
    assert out == format_number(eval_expr("3 + 2")) == "5"

def test_names_emojis_and_locales(system):
    text = "<stat:1:emoji> <stat:1:name> / <section:1:emoji> <section:1:name>"
    assert render_preview(text, system) == "💪 Strength / 📜 Main"
    assert render_preview("<stat:1:name>", system, locale="pt-BR") == "Força"
    # missing translation falls back to default
    assert render_preview("<stat:2:name>", system, locale="pt-BR") == "Notes"

def test_display_values_per_type(system):
    text = "|".join(f"<stat:{i}:value>" for i in range(1, 8))
    assert render_preview(text, system) == "3|string|false|Warrior|Warrior|[ref: 42]|[calculated]"

def test_section_value_is_unknown_property(system):
    assert render_preview("<section:1:value>", system) == "[unknown property value]"

def test_failing_token_only_degrades_itself(system):
    def evaluator(expr):
        raise EvaluationError(expr, "boom")

    out = render_preview("A <math:1 + 1> B <stat:1:name>", system, evaluator=evaluator)
    assert out == "A [Error: 1 + 1] B Strength"

def test_dice_success_and_failure(system):
    roller = RecordingRoller()
    assert render_preview("<dice:2d<stat:1:value>>", system, roller=roller) == "🎲 2d3 = `4`"
    assert roller.payloads == ["2d3"]

    def broken(expr):
        raise EvaluationError(expr, "bad dice")

    assert render_preview("x <dice:2d6>", system, roller=broken) == "x [Dice error: bad dice]"

def test_dice_payload_samples(system):
    roller = RecordingRoller()
    render_preview("<dice:<stat:2:value>d<stat:3:value>+<stat:4:value>+<stat:7:value>+<stat:99:value>>",
                   system, roller=roller)
    assert roller.payloads == ["3d1+7+3+3"]

def test_portuguese_diagnostics(system):
    assert render_preview("<stat:99:name>", system, language="pt-BR") == "[Stat 99 não encontrado]"
    assert render_preview("<stat:7:value>", system, language="pt-BR") == "[calculado]"

def test_sample_profiles(system):
    stats = system.stats
    assert sample_value(1, stats, MATH) == "3"
    assert sample_value(1, stats, CONDITION_HIGH) == "8"
    assert sample_value(99, stats, MATH) == "0"
    assert sample_value(99, stats, DICE) == "3"
    assert sample_value(4, stats, CONDITION_HIGH) == "9"
    assert sample_value(5, stats, MATH) == "7"
    assert sample_value(6, stats, DICE) == "2"

def test_plain_text_passes_through(system):
    assert render_preview("no tokens < here >", system) == "no tokens < here >"
    assert render_preview("", system) == ""

def test_condition_preview(system):
    resolver = TemplateResolver(system)
    dice = Dice(expression="1d20", condition=DiceCondition(value1="<stat:1:value>", operator="<",
                                                           value2="<stat:1:value>"))
    cond = resolver.preview_condition(dice)
    assert (cond.left, cond.operator, cond.right, cond.result) == ("3", "<", "8", True)
    assert resolver.preview_condition(Dice(expression="1d4")) is None

def test_stat_roll_picks_first_matching_dice(system):
    roller = RecordingRoller()
    resolver = TemplateResolver(system, roller=roller)
    # sampled Strength is 3, so the ">= 10" entry is skipped
    assert resolver.preview_stat_roll(system.stat_by_id(7)) == "🎲 1d6 + 3 = `4`"
    assert resolver.preview_stat_roll(system.stat_by_id(2)) is None

def test_math_with_huge_integers(system):
    assert render_preview("<math:2^2000>", system) == str(2 ** 2000)
    assert render_preview("<math:2^60 + 1>", system) == "1152921504606846977"

def test_attributes_roll_preview(system):
    roller = RecordingRoller()
    resolver = TemplateResolver(system, roller=roller)
    assert resolver.preview_attributes_roll() is None
    system.integrations = Integrations(atributes_roll="4d6kh3 + <stat:1:value>")
    assert resolver.preview_attributes_roll() == "🎲 4d6kh3 + 3 = `4`"

def test_initiative_roll_preview(system):
    resolver = TemplateResolver(system, roller=RecordingRoller())
    system.integrations = Integrations(iniciative={"id": "7"})
    assert resolver.preview_initiative_roll() == "🎲 1d6 + 3 = `4`"
    system.integrations = Integrations(iniciative={"id": "99"})
    assert resolver.preview_initiative_roll() is None
