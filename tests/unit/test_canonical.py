import pytest

from esg_pipeline.geocode.canonical import CanonicalRules, canonicalize_office_name


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("PW-Chicago-7th Floor", "Chicago"),
        ("PW-New York 19th Floor East", "New York"),
        ("PW-Seattle NN", "Seattle"),
        ("PW-London-150", "London"),
        ("PW-Vancouver - Georgia Str", "Vancouver"),
        ("PW-Vancouver-Georgia Street", "Vancouver"),
        ("PW-Vancouver - Georgia Street West", "Vancouver"),
        ("PW-Vancouver-Georgia Str 1055", "Vancouver"),
        ("PW-Los Angeles - Spring Street", "Los Angeles"),
        ("PW-Calgary-11th ave", "Calgary"),
        ("PW-Calgary-9th ave", "Calgary"),
        ("PW-Bainbridge-Fort Ward", "Bainbridge"),
        ("  Boston  ", "Boston"),
        ("Dallas", "Dallas"),
    ],
)
def test_canonicalize_office_name_defaults(name, expected):
    assert canonicalize_office_name(name) == expected


def test_prefix_only_stripped_at_start():
    assert canonicalize_office_name("Atlanta PW-Annex") == "Atlanta PW-Annex"


def test_custom_rules():
    rules = CanonicalRules(prefix="ACME ", fragments=("Tower B",))

    assert canonicalize_office_name("ACME Austin - Tower B", rules) == "Austin"
    assert canonicalize_office_name("PW-Austin", rules) == "PW-Austin"


def test_non_greedy_fragment_must_end_the_name():
    assert canonicalize_office_name("PW-Los Angeles - Spring Street Annex") == "Los Angeles - Spring Street Annex"


def test_custom_greedy_fragment():
    rules = CanonicalRules(prefix="", fragments=("Tower",), greedy_fragments=("tower",))

    assert canonicalize_office_name("Austin - Tower B, Level 3", rules) == "Austin"
    assert canonicalize_office_name("Austin - Tower B, Level 3", CanonicalRules(prefix="", fragments=("Tower",))) == (
        "Austin - Tower B, Level 3"
    )
