import pytest
from sheetforge.engine.editing import (
    add_section, add_stat, available_formula_stats, default_system, duplicate_stat, move_section,
    move_stat, new_stat, next_id, remove_section, remove_stat, set_formula, update_section, update_stat,
)
from sheetforge.engine.errors import CircularDependencyError, UnknownStatError
from sheetforge.engine.schema_models import CalculatedStat, NumericStat, StringStat

@pytest.fixture
def system():
    base = default_system()
    return base.model_copy(update={"stats": [
        NumericStat(id=1, name={"default": "Strength"}, min=0, max=10),
        StringStat(id=2, name={"default": "Notes"}),
        CalculatedStat(id=3, name={"default": "Attack"}, formula="<stat:4:value>"),
        CalculatedStat(id=4, name={"default": "Bonus"}, formula="<stat:1:value>"),
    ]})

def test_add_stat_uses_next_id_and_leaves_input_alone(system):
    edited = add_stat(system, "enum")
    assert len(system.stats) == 4
    assert edited.stats[-1].id == 5
    assert edited.stats[-1].type == "enum"

def test_new_stat_defaults():
    assert new_stat("numeric", 1).max == 10
    assert new_stat("string", 1).maxLength == 200
    assert new_stat("calculated", 1).formula == ""
    with pytest.raises(ValueError):
        new_stat("dice", 1)

def test_next_id_on_empty():
    assert next_id([]) == 1

def test_duplicate_stat_inserts_copy_after_original(system):
    edited = duplicate_stat(system, 0)
    assert [s.id for s in edited.stats] == [1, 5, 2, 3, 4]
    assert edited.stats[1].name.default == "Strength (Copy)"
    assert edited.stats[1].max == 10

def test_move_stat_ignores_out_of_range(system):
    assert [s.id for s in move_stat(system, 0, 1).stats] == [2, 1, 3, 4]
    assert [s.id for s in move_stat(system, 0, -1).stats] == [1, 2, 3, 4]
    assert [s.id for s in move_stat(system, 3, 1).stats] == [1, 2, 3, 4]

def test_update_and_remove_stat(system):
    edited = update_stat(system, 0, system.stats[0].model_copy(update={"max": 20}))
    assert edited.stats[0].max == 20
    assert system.stats[0].max == 10
    assert [s.id for s in remove_stat(system, 1).stats] == [1, 3, 4]

def test_set_formula_refuses_cycles(system):
    with pytest.raises(CircularDependencyError) as exc:
        set_formula(system, 4, "<stat:3:value>")
    assert exc.value.path == [4, 3, 4]
    assert system.stat_by_id(4).formula == "<stat:1:value>"

def test_set_formula_applies_valid_edit(system):
    edited = set_formula(system, 4, "<stat:1:value> * 2")
    assert edited.stat_by_id(4).formula == "<stat:1:value> * 2"
    assert system.stat_by_id(4).formula == "<stat:1:value>"

def test_set_formula_errors(system):
    with pytest.raises(TypeError):
        set_formula(system, 1, "1")
    with pytest.raises(UnknownStatError):
        set_formula(system, 99, "1")

def test_available_formula_stats_excludes_cycles(system):
    assert [s.id for s in available_formula_stats(system, 4)] == [1]
    assert [s.id for s in available_formula_stats(system, 3)] == [1, 4]

def test_section_edits(system):
    edited = add_section(system)
    assert [s.id for s in edited.sections] == [1, 2, 3]
    assert edited.sections[-1].preview.type == "string"
    renamed = update_section(edited, 2, edited.sections[2].model_copy(update={"emoji": "🗡️"}))
    assert renamed.sections[2].emoji == "🗡️"
    assert [s.id for s in move_section(edited, 2, -1).sections] == [1, 3, 2]
    assert [s.id for s in remove_section(edited, 0).sections] == [2, 3]
