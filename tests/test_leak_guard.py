"""Tests for the development leak guard and schema compatibility filter."""

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import config
from app.security import db_compat
from app.security.column_selectors import EntityType, Tier, columns_for_tier
from app.security.db_compat import safe_columns
from app.security.leak_guard import LeakedFieldError, assert_no_leaked_fields, forbidden_fields


def test_teaser_row_with_guide_field_raises():
    rows = [{"id": "a", "title": "ok"}, {"id": "b", "find_again_prompt": "leak"}]
    with pytest.raises(LeakedFieldError) as exc_info:
        assert_no_leaked_fields(rows, Tier.TEASER)
    assert exc_info.value.field == "find_again_prompt"
    assert exc_info.value.tier == Tier.TEASER
    assert "find_again_prompt" in str(exc_info.value)
    assert "teaser" in str(exc_info.value)


def test_teaser_row_with_allowed_fields_passes():
    row = {name: None for name in columns_for_tier(EntityType.PLAYDATE, Tier.TEASER)}
    row.update({"score": 2, "coverage": {}, "has_find_again": True})
    assert_no_leaked_fields([row], "teaser")


def test_entitled_row_with_internal_field_raises():
    with pytest.raises(LeakedFieldError):
        assert_no_leaked_fields([{"id": "a", "substitutions_notes": "x", "notion_id": "n"}], Tier.ENTITLED)


def test_entitled_row_with_collective_field_raises():
    with pytest.raises(LeakedFieldError):
        assert_no_leaked_fields([{"design_rationale": "x"}], Tier.ENTITLED)


def test_internal_tier_forbids_nothing():
    assert forbidden_fields(Tier.INTERNAL) == frozenset()
    assert_no_leaked_fields([{"notion_id": "n", "ip_tier": "x"}], Tier.INTERNAL)


def test_shared_names_are_not_forbidden_where_visible():
    # context_tags is teaser on both entities; material-only entitled fields stay forbidden
    assert "context_tags" not in forbidden_fields(Tier.TEASER)
    assert "connector_modes" in forbidden_fields(Tier.TEASER)
    assert "connector_modes" not in forbidden_fields(Tier.ENTITLED)


def test_noop_in_production(monkeypatch):
    monkeypatch.setattr(config, "ENVIRONMENT", "production")
    assert_no_leaked_fields([{"notion_id": "n"}], Tier.TEASER)


def test_empty_rows_pass():
    assert_no_leaked_fields([], Tier.TEASER)


def test_safe_columns_keeps_everything_on_migrated_schema(db):
    columns = columns_for_tier(EntityType.PLAYDATE, Tier.TEASER)
    assert safe_columns(db, EntityType.PLAYDATE, columns) == columns


def test_safe_columns_drops_unmigrated_optional_columns():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE playdates_cache (id TEXT PRIMARY KEY, slug TEXT, title TEXT)"))
    session = sessionmaker(bind=engine)()
    try:
        columns = columns_for_tier(EntityType.PLAYDATE, Tier.TEASER)
        kept = safe_columns(session, EntityType.PLAYDATE, columns)
        assert "cover_url" not in kept
        assert "gallery_visible_fields" not in kept
        # Non-optional columns are kept even though this table lacks them
        assert kept == [c for c in columns if c not in ("cover_url", "gallery_visible_fields")]
    finally:
        session.close()
        engine.dispose()


def test_safe_columns_ignores_entities_without_optional_columns(db):
    columns = columns_for_tier(EntityType.MATERIAL, Tier.ENTITLED)
    assert safe_columns(db, "material", columns) == columns


def test_failed_inspection_is_retried_on_next_query(db, monkeypatch):
    calls = []

    def flaky_inspect(bind):
        calls.append(bind)
        if len(calls) == 1:
            raise ConnectionError("database restarting")
        return real_inspect(bind)

    real_inspect = db_compat.inspect
    monkeypatch.setattr(db_compat, "inspect", flaky_inspect)
    columns = columns_for_tier(EntityType.PLAYDATE, Tier.TEASER)

    assert "cover_url" not in safe_columns(db, EntityType.PLAYDATE, columns)
    assert safe_columns(db, EntityType.PLAYDATE, columns) == columns
    assert safe_columns(db, EntityType.PLAYDATE, columns) == columns
    assert len(calls) == 2
