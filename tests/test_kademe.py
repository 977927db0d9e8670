"""
Tests for the kademe (grade band) helpers.

Covers:
  - grade token normalization
  - config normalization (defaults, swapped ranges, disabled bands)
  - range labels
  - per-band student summaries
  - visible grades and contiguous segments
  - program type resolution and variant visibility
"""

from app.utils.kademe import (
    GRADES,
    build_kademe_segments,
    format_kademe_label,
    get_default_kademe_config,
    get_grade_options,
    get_kademe_definitions,
    get_kademe_for_grade,
    get_kademe_range_label,
    grade_index,
    normalize_grade,
    normalize_kademe_config,
    resolve_visible_grades,
    summarize_grades_by_kademe,
)
from app.utils.program_type import (
    get_program_type,
    is_kademe_key_visible,
    map_base_kademe_to_variant,
    normalize_program_type,
)


class TestNormalizeGrade:
    def test_kg_any_case(self):
        assert normalize_grade("kg") == "KG"
        assert normalize_grade(" KG ") == "KG"

    def test_numeric_grades(self):
        assert normalize_grade("05") == "5"
        assert normalize_grade(12) == "12"

    def test_out_of_range_and_garbage(self):
        assert normalize_grade("13") is None
        assert normalize_grade("0") is None
        assert normalize_grade("abc") is None
        assert normalize_grade(None) is None

    def test_grade_index(self):
        assert grade_index("KG") == 0
        assert grade_index("12") == 12
        assert grade_index("x") == -1


class TestNormalizeConfig:
    def test_empty_config_gets_defaults(self):
        assert normalize_kademe_config(None) == get_default_kademe_config()

    def test_swapped_range_is_reordered(self):
        cfg = normalize_kademe_config({"ilkokul": {"from": "5", "to": "1"}})
        assert cfg["ilkokul"] == {"enabled": True, "from": "1", "to": "5"}

    def test_invalid_bounds_fall_back_to_band_defaults(self):
        cfg = normalize_kademe_config({"lise": {"from": "x", "to": "99"}})
        assert cfg["lise"]["from"] == "10"
        assert cfg["lise"]["to"] == "12"

    def test_only_explicit_false_disables(self):
        cfg = normalize_kademe_config({"ortaokul": {"enabled": False}, "lise": {"enabled": 0}})
        assert cfg["ortaokul"]["enabled"] is False
        assert cfg["lise"]["enabled"] is True

    def test_definitions_and_grade_options_are_copies(self):
        defs = get_kademe_definitions()
        assert [d["key"] for d in defs] == ["okulOncesi", "ilkokul", "ortaokul", "lise"]
        defs[0]["label"] = "x"
        assert get_kademe_definitions()[0]["label"] == "Okul Öncesi"
        options = get_grade_options()
        assert options[0] == "KG" and options[-1] == "12" and len(options) == 13


class TestLabels:
    def test_range_label(self):
        assert get_kademe_range_label(None, "lise") == "10-12"
        assert get_kademe_range_label(None, "okulOncesi") == "KG"

    def test_disabled_or_unknown_band_has_no_label(self):
        assert get_kademe_range_label({"lise": {"enabled": False}}, "lise") == ""
        assert get_kademe_range_label(None, "universite") == ""

    def test_format_label(self):
        assert format_kademe_label("İlkokul", None, "ilkokul") == "İlkokul (1-5)"
        assert format_kademe_label("Lise", {"lise": {"enabled": False}}, "lise") == "Lise"


class TestSummaries:
    def test_kademe_for_grade_skips_disabled_bands(self):
        cfg = {"ortaokul": {"enabled": False}}
        assert get_kademe_for_grade("7", cfg) is None
        assert get_kademe_for_grade("3", cfg) == "ilkokul"

    def test_summarize_counts_unknown_grades_in_total(self):
        grades = [
            {"grade": "KG", "studentsPerBranch": 15},
            {"grade": "3", "studentsPerBranch": "20"},
            {"grade": "13", "studentsPerBranch": 5},
            "not a row",
        ]
        out = summarize_grades_by_kademe(grades, None)
        assert out["okulOncesi"] == 15
        assert out["ilkokul"] == 20
        assert out["ortaokul"] == 0
        assert out["total"] == 40

    def test_summarize_non_list(self):
        assert summarize_grades_by_kademe(None, None)["total"] == 0


class TestVisibleGradesAndSegments:
    def test_all_disabled_shows_every_grade(self):
        cfg = {k: {"enabled": False} for k in ("okulOncesi", "ilkokul", "ortaokul", "lise")}
        assert resolve_visible_grades(cfg) == list(GRADES)

    def test_visible_grades_follow_enabled_bands(self):
        cfg = {"ortaokul": {"enabled": False}, "lise": {"enabled": False}}
        assert resolve_visible_grades(cfg) == ["KG", "1", "2", "3", "4", "5"]

    def test_segments_mark_unowned_runs(self):
        cfg = {"ortaokul": {"enabled": False}}
        segments = build_kademe_segments(list(GRADES), cfg)
        assert [s["key"] for s in segments] == ["okulOncesi", "ilkokul", None, "lise"]
        assert segments[0]["label"] == "Okul Öncesi (KG)"
        assert segments[2] == {"key": None, "label": "", "grades": ["6", "7", "8", "9"]}
        assert segments[3]["grades"] == ["10", "11", "12"]


class TestProgramType:
    def test_normalize(self):
        assert normalize_program_type(" International ") == "international"
        assert normalize_program_type("bilingual") == "local"
        assert normalize_program_type(None) == "local"

    def test_scenario_column_wins_over_inputs(self):
        inputs = {"temelBilgiler": {"programType": "local"}}
        assert get_program_type({"program_type": "international"}, inputs) == "international"
        assert get_program_type({}, {"temelBilgiler": {"programType": "international"}}) == "international"
        assert get_program_type() == "local"

    def test_variant_visibility(self):
        assert is_kademe_key_visible("okulOncesi", "international")
        assert is_kademe_key_visible("ilkokulYerel", "local")
        assert not is_kademe_key_visible("ilkokulYerel", "international")
        assert is_kademe_key_visible("liseInt", "international")
        assert map_base_kademe_to_variant("lise", "international") == "liseInt"
        assert map_base_kademe_to_variant("okulOncesi", "international") == "okulOncesi"
