"""Program type (local / international) and the kademe variant keys it shows.

Revenue and HR tables split each band except preschool into a ``...Yerel``
(local curriculum) and a ``...Int`` (international curriculum) row.  Only
the variant matching the scenario's program type is visible.
"""

from __future__ import annotations

LOCAL = "local"
INTERNATIONAL = "international"
PROGRAM_TYPES = {LOCAL, INTERNATIONAL}


def normalize_program_type(value) -> str:
    raw = str(value or "").strip().lower()
    return raw if raw in PROGRAM_TYPES else LOCAL


def get_program_type(scenario=None, inputs=None) -> str:
    """Resolve the program type: the scenario column first, then the inputs document."""
    if isinstance(scenario, dict):
        from_scenario = scenario.get("program_type") or scenario.get("programType")
        if from_scenario:
            return normalize_program_type(from_scenario)
    inputs = inputs if isinstance(inputs, dict) else {}
    temel = inputs.get("temelBilgiler") if isinstance(inputs.get("temelBilgiler"), dict) else {}
    return normalize_program_type(temel.get("programType") or inputs.get("programType"))


def is_kademe_key_visible(key, program_type=LOCAL) -> bool:
    ptype = normalize_program_type(program_type)
    if not key or key == "okulOncesi":
        return True
    if key.endswith("Yerel"):
        return ptype == LOCAL
    if key.endswith("Int"):
        return ptype == INTERNATIONAL
    return True


def _suffix(program_type) -> str:
    return "Int" if normalize_program_type(program_type) == INTERNATIONAL else "Yerel"


def map_base_kademe_to_variant(base_kademe: str, program_type=LOCAL) -> str:
    if base_kademe == "okulOncesi":
        return "okulOncesi"
    return f"{base_kademe}{_suffix(program_type)}"
