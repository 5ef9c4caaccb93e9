from sheetforge.engine.tokens import (
    DiceExpr, MathExpr, SectionRef, Span, StatRef, scan, segments, stat_value_ids,
    substitute_refs, substitute_stat_values, iter_stat_refs, contains_tokens,
)

def test_scan_reference_with_span():
    text = "Hi <stat:1:name>!"
    found = list(scan(text))
    assert found == [(StatRef(1, "name"), Span(3, 16))]
    assert found[0][1].slice(text) == "<stat:1:name>"

def test_scan_all_token_kinds_in_order():
    text = "<section:2:emoji> <stat:3:value> <math:1+2> <dice:2d6>"
    toks = [t for t, _ in scan(text)]
    assert toks == [SectionRef(2, "emoji"), StatRef(3, "value"), MathExpr("1+2"), DiceExpr("2d6")]

def test_math_body_may_contain_complete_references():
    toks = [t for t, _ in scan("<math:<stat:1:value> + 2>")]
    assert toks == [MathExpr("<stat:1:value> + 2")]

def test_malformed_tokens_are_literal_text():
    for text in ("<math:>", "<dice:1d6", "<stat:x:value>", "<stat:1:foo>", "<stats:1:name>", "a < b > c"):
        assert list(scan(text)) == []
        assert contains_tokens(text) is False

def test_scan_is_restartable():
    s = scan("<stat:1:name> and <stat:2:name>")
    assert list(s) == list(s)
    assert len(list(s)) == 2

def test_segments_cover_the_whole_text():
    text = "A <stat:1:name> B <math:1 + <stat:2:value>> C"
    parts = list(segments(text))
    rebuilt = "".join(p if isinstance(p, str) else p[1].slice(text) for p in parts)
    assert rebuilt == text
    assert parts[0] == "A "
    assert parts[-1] == " C"

def test_stat_value_ids_first_occurrence_without_repeats():
    text = "<stat:2:value> <stat:1:value> <stat:2:value> <stat:3:name>"
    assert stat_value_ids(text) == [2, 1]

def test_stat_value_ids_inside_expressions():
    assert stat_value_ids("<math:<stat:4:value> * 2> + <dice:1d<stat:5:value>>") == [4, 5]

def test_iter_stat_refs_shallow_skips_nested():
    refs = list(iter_stat_refs("<stat:1:name> <math:<stat:2:value>>", deep=False))
    assert refs == [StatRef(1, "name")]

def test_substitutions():
    assert substitute_stat_values("<stat:1:value> + <stat:2:value>", lambda sid: str(sid * 10)) == "10 + 20"
    out = substitute_refs("<stat:1:name>/<section:2:name>", lambda ref: f"{type(ref).__name__}{ref.id}")
    assert out == "StatRef1/SectionRef2"
