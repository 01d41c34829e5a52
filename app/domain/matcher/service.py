"""Matcher service - rank playdates against the caller's filters"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...auth import CWSession
from ...security.column_selectors import EntityType, Tier, tier_increment
from ...security.leak_guard import assert_no_leaked_fields
from ..entitlements.service import EntitlementService
from .candidate_cache import get_candidates
from .repository import MatcherRepository
from .schemas import FACETS, MatcherInput, normalize_tag
from .scoring import ScoredPlaydate, rank, score_playdate

# Teaser fields copied onto every ranked result
RESULT_FIELDS = (
    "id",
    "slug",
    "title",
    "headline",
    "primary_function",
    "arc_emphasis",
    "context_tags",
    "friction_dial",
    "energy_level",
    "start_in_120s",
    "has_find_again",
)

logger = logging.getLogger(__name__)


class MatcherService:
    """Service layer for the playdate matcher"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MatcherRepository()
        self.entitlements = EntitlementService(db)

    def _user_materials_by_form(self, candidates: list[dict], material_ids: list[str]) -> dict[str, list[dict]]:
        """Resolve the caller's material ids against known materials, grouped by primary form"""
        known: dict[str, dict] = {}
        for candidate in candidates:
            for m in candidate["materials"]:
                known[normalize_tag(m["id"])] = m

        by_form: dict[str, list[dict]] = {}
        for material_id in material_ids:
            m = known.get(normalize_tag(material_id))
            if m and m.get("form_primary"):
                by_form.setdefault(normalize_tag(m["form_primary"]), []).append(
                    {"id": m["id"], "title": m["title"]}
                )
        return by_form

    def _entitled_ids(self, session: Optional[CWSession], playdate_ids: list[str]) -> set[str]:
        if session is None or not session.org_id:
            return set()
        try:
            return self.entitlements.entitled_playdate_ids(session.org_id, playdate_ids)
        except Exception as e:
            # Fail closed: nobody gets guide fields if the pack lookup itself fails
            logger.error(f"❌ Entitlement lookup failed for org {session.org_id}: {e}")
            self.db.rollback()
            return set()

    def _build_result(
        self,
        scored: ScoredPlaydate,
        entitled_row: Optional[dict],
        pack_slugs: list[str],
    ) -> dict:
        candidate = scored.candidate
        result = {key: candidate.get(key) for key in RESULT_FIELDS}
        result.update(
            {
                "score": scored.score,
                "facets_considered": scored.considered,
                "coverage": scored.coverage,
                "is_entitled": entitled_row is not None,
                "pack_slugs": pack_slugs,
            }
        )
        if entitled_row is not None:
            for column in tier_increment(EntityType.PLAYDATE, Tier.ENTITLED):
                if column in entitled_row:
                    result[column] = entitled_row[column]
        return result

    def perform_matching(
        self,
        matcher_input: MatcherInput,
        session: Optional[CWSession],
        limit: Optional[int] = None,
    ) -> dict:
        """
        1. Load ready public candidates at teaser tier.
        2. Score each against the populated facets, dropping score zero.
        3. Rank: score desc, title asc.
        4. Merge entitled guide fields for playdates the caller's org owns.
        """
        candidates = get_candidates(self.db)
        by_form = self._user_materials_by_form(candidates, matcher_input.materials)

        ranked = rank([score_playdate(c, matcher_input, by_form) for c in candidates])
        total_matched = len(ranked)
        ranked = ranked[: limit or config.MATCHER_MAX_RESULTS]

        playdate_ids = [s.candidate["id"] for s in ranked]
        entitled_ids = self._entitled_ids(session, playdate_ids)
        entitled_rows = self.repo.get_entitled_rows(self.db, sorted(entitled_ids)) if entitled_ids else {}
        pack_slugs = self.repo.get_pack_slugs(self.db, playdate_ids)

        results = []
        for scored in ranked:
            pid = scored.candidate["id"]
            result = self._build_result(scored, entitled_rows.get(pid), pack_slugs.get(pid, []))
            assert_no_leaked_fields([result], Tier.ENTITLED if result["is_entitled"] else Tier.TEASER)
            results.append(result)

        logger.info(
            f"🔎 Matcher: {len(candidates)} candidates, {total_matched} matched, "
            f"{len(entitled_rows)} enriched (facets: {matcher_input.populated_facets()})"
        )

        return {
            "ranked": results,
            "meta": {
                "facets_applied": [FACETS[f] for f in matcher_input.populated_facets()],
                "total_candidates": len(candidates),
                "total_matched": total_matched,
                "returned": len(results),
            },
        }

    def get_picker_options(self) -> dict:
        """Distinct filter values across ready public playdates, for the matcher form"""
        candidates = get_candidates(self.db)

        forms, slots, contexts, energy = set(), set(), set(), set()
        materials: dict[str, dict] = {}
        for c in candidates:
            forms.update(f for f in c["required_forms"] if isinstance(f, str))
            slots.update(s for s in c["slots_optional"] if isinstance(s, str))
            contexts.update(t for t in c["context_tags"] if isinstance(t, str))
            if c.get("energy_level"):
                energy.add(c["energy_level"])
            for m in c["materials"]:
                materials.setdefault(m["id"], m)

        energy_order = ["calm", "moderate", "active"]
        return {
            "materials": sorted(materials.values(), key=lambda m: ((m["title"] or "").casefold(), m["id"])),
            "forms": sorted(forms),
            "slots": sorted(slots),
            "contexts": sorted(contexts),
            "energyLevels": [e for e in energy_order if e in energy],
        }
