"""
Scoring for the playdate matcher.

A facet is satisfied when the playdate's tags for it intersect the
caller's values. The score is the number of satisfied facets among the
facets the caller populated; unpopulated facets are ignored entirely.
"""

from dataclasses import dataclass, field

from .schemas import FACETS, MatcherInput, normalize_tag


@dataclass
class ScoredPlaydate:
    candidate: dict
    score: int
    considered: int
    satisfied: list[str] = field(default_factory=list)
    unsatisfied: list[str] = field(default_factory=list)
    matched: dict[str, list[str]] = field(default_factory=dict)
    coverage: dict = field(default_factory=dict)

    def sort_key(self) -> tuple:
        return (-self.score, (self.candidate.get("title") or "").casefold(), self.candidate["id"])


def facet_values(candidate: dict) -> dict[str, list[str]]:
    """Catalog tag values for each facet, as spelled in the catalog"""
    materials = []
    for m in candidate.get("materials", []):
        materials.append(m["id"])
        if m.get("form_primary"):
            materials.append(m["form_primary"])

    energy = candidate.get("energy_level")
    return {
        "materials": materials,
        "forms": [f for f in candidate.get("required_forms", []) if isinstance(f, str)],
        "slots": [s for s in candidate.get("slots_optional", []) if isinstance(s, str)],
        "contexts": [c for c in candidate.get("context_tags", []) if isinstance(c, str)],
        "energy_levels": [energy] if energy else [],
    }


def _material_coverage(candidate: dict, requested: set[str]) -> tuple[list[dict], list[dict]]:
    covered, missing = [], []
    for m in candidate.get("materials", []):
        keys = {normalize_tag(m["id"])}
        if m.get("form_primary"):
            keys.add(normalize_tag(m["form_primary"]))
        if keys & requested:
            covered.append({"id": m["id"], "title": m["title"]})
        else:
            missing.append({"id": m["id"], "title": m["title"], "form_primary": m.get("form_primary")})
    return covered, missing


def _form_coverage(candidate: dict, requested: set[str]) -> tuple[list[str], list[str]]:
    covered, missing = [], []
    for form in candidate.get("required_forms", []):
        if not isinstance(form, str):
            continue
        (covered if normalize_tag(form) in requested else missing).append(form)
    return covered, missing


def suggest_substitutions(
    missing: list[dict], user_materials_by_form: dict[str, list[dict]]
) -> list[dict]:
    """For each missing material, the caller's materials sharing its primary form"""
    suggestions = []
    for m in missing:
        form = m.get("form_primary")
        if not form:
            continue
        alternatives = [a for a in user_materials_by_form.get(normalize_tag(form), []) if a["id"] != m["id"]]
        if alternatives:
            suggestions.append({"missing_material": m["title"], "available_alternatives": alternatives})
    return suggestions


def score_playdate(
    candidate: dict,
    matcher_input: MatcherInput,
    user_materials_by_form: dict[str, list[dict]],
) -> ScoredPlaydate:
    values = facet_values(candidate)
    populated = matcher_input.populated_facets()

    satisfied, unsatisfied, matched = [], [], {}
    for facet in populated:
        requested = matcher_input.requested(facet)
        overlap = list(dict.fromkeys(v for v in values[facet] if normalize_tag(v) in requested))
        if overlap:
            satisfied.append(FACETS[facet])
            matched[FACETS[facet]] = overlap
        else:
            unsatisfied.append(FACETS[facet])

    materials_covered, materials_missing = [], []
    if "materials" in populated:
        materials_covered, materials_missing = _material_coverage(
            candidate, matcher_input.requested("materials")
        )

    forms_covered, forms_missing = [], []
    if "forms" in populated:
        forms_covered, forms_missing = _form_coverage(candidate, matcher_input.requested("forms"))

    coverage = {
        "satisfied": satisfied,
        "unsatisfied": unsatisfied,
        "matched": matched,
        "materials_covered": materials_covered,
        "materials_missing": materials_missing,
        "forms_covered": forms_covered,
        "forms_missing": forms_missing,
        "suggested_substitutions": suggest_substitutions(materials_missing, user_materials_by_form),
    }

    return ScoredPlaydate(
        candidate=candidate,
        score=len(satisfied),
        considered=len(populated),
        satisfied=satisfied,
        unsatisfied=unsatisfied,
        matched=matched,
        coverage=coverage,
    )


def rank(scored: list[ScoredPlaydate]) -> list[ScoredPlaydate]:
    """Drop score-zero playdates, then score desc, title asc, id asc"""
    return sorted((s for s in scored if s.score > 0), key=ScoredPlaydate.sort_key)
