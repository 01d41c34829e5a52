"""Shared fixtures: in-memory SQLite database, seeded catalog, API client."""

import os
from datetime import datetime, timedelta

os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SECURITY_HEADERS_ENABLED"] = "true"
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth import issue_session_token  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Entitlement,
    Material,
    Organisation,
    OrgMembership,
    Pack,
    PackPlaydate,
    Playdate,
    PlaydateMaterial,
    User,
)
from app.security.db_compat import reset_column_cache  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_column_cache():
    reset_column_cache()
    yield
    reset_column_cache()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _playdate(slug, title, **fields):
    defaults = {
        "status": "ready",
        "release_channel": "sampler",
        "headline": f"{title} headline",
        "primary_function": "construction",
        "arc_emphasis": ["explore"],
        "context_tags": [],
        "required_forms": [],
        "slots_optional": [],
        "start_in_120s": False,
        "find": f"find the {title.lower()} pieces",
        "fold": "fold it",
        "unfold": "unfold it",
        "find_again_mode": "shape hunt",
        "find_again_prompt": f"where else does {title.lower()} show up?",
        "substitutions_notes": f"swap notes for {title.lower()}",
        "rails_sentence": "keep it simple",
        "slots_notes": "slot notes",
        "design_rationale": "why it works",
        "developmental_notes": "what it builds",
        "author_notes": "author aside",
        "ip_tier": "original",
        "notion_id": f"notion-{slug}",
        "notion_last_edited": datetime(2026, 1, 1, 12, 0),
        "synced_at": datetime(2026, 1, 2, 12, 0),
    }
    defaults.update(fields)
    return Playdate(slug=slug, title=title, **defaults)


@pytest.fixture
def catalog(db):
    """
    Materials: cardboard box, paper tube (cardboard), silk scarf (fabric),
    glitter (do-not-use).

    Ready playdates: Box Fort (sampler), Scarf Cape (sampler, fabric pack),
    Tube Tunnel and Arch Bridge (pack-only, tubes pack). Plus a draft and an
    internal-channel playdate that the matcher must never see.

    org-one owns the tubes pack.
    """
    box = Material(id="mat-box", title="Cardboard box", form_primary="cardboard", source="grocery store")
    tube = Material(id="mat-tube", title="Paper tube", form_primary="cardboard", source="recycling")
    scarf = Material(id="mat-scarf", title="Silk scarf", form_primary="fabric", source="closet")
    glitter = Material(id="mat-glitter", title="Glitter", form_primary="sparkle", do_not_use=True)
    db.add_all([box, tube, scarf, glitter])

    fort = _playdate(
        "box-fort",
        "Box Fort",
        id="pd-fort",
        required_forms=["container", "flat sheet"],
        slots_optional=["tape"],
        context_tags=["indoor"],
        friction_dial=4,
        start_in_120s=True,
    )
    cape = _playdate(
        "scarf-cape",
        "Scarf Cape",
        id="pd-cape",
        required_forms=["drape"],
        context_tags=["outdoor"],
        friction_dial=3,
    )
    tunnel = _playdate(
        "tube-tunnel",
        "Tube Tunnel",
        id="pd-tunnel",
        release_channel="pack-only",
        required_forms=["tube"],
        slots_optional=["tape", "string"],
        context_tags=["indoor", "small space"],
        friction_dial=2,
    )
    arch = _playdate(
        "arch-bridge",
        "Arch Bridge",
        id="pd-arch",
        release_channel="pack-only",
        required_forms=["tube"],
        context_tags=["indoor"],
        friction_dial=1,
        find_again_mode=None,
    )
    draft = _playdate("draft-idea", "Draft Idea", id="pd-draft", status="draft", context_tags=["indoor"])
    hidden = _playdate(
        "internal-only", "Internal Only", id="pd-internal", release_channel="internal", context_tags=["indoor"]
    )
    db.add_all([fort, cape, tunnel, arch, draft, hidden])
    db.flush()

    db.add_all(
        [
            PlaydateMaterial(playdate_id=fort.id, material_id=box.id),
            PlaydateMaterial(playdate_id=fort.id, material_id=glitter.id),
            PlaydateMaterial(playdate_id=cape.id, material_id=scarf.id),
            PlaydateMaterial(playdate_id=tunnel.id, material_id=tube.id),
            PlaydateMaterial(playdate_id=arch.id, material_id=tube.id),
            PlaydateMaterial(playdate_id=arch.id, material_id=scarf.id),
            PlaydateMaterial(playdate_id=draft.id, material_id=box.id),
            PlaydateMaterial(playdate_id=hidden.id, material_id=box.id),
        ]
    )

    tubes_pack = Pack(id="pack-tubes", slug="tubes-pack", title="Tubes Pack", status="ready")
    fabric_pack = Pack(id="pack-fabric", slug="fabric-pack", title="Fabric Pack", status="ready")
    db.add_all([tubes_pack, fabric_pack])
    db.flush()
    db.add_all(
        [
            PackPlaydate(pack_id=tubes_pack.id, playdate_id=tunnel.id),
            PackPlaydate(pack_id=tubes_pack.id, playdate_id=arch.id),
            PackPlaydate(pack_id=fabric_pack.id, playdate_id=cape.id),
        ]
    )

    org_one = Organisation(id="org-one", name="Org One")
    org_two = Organisation(id="org-two", name="Org Two")
    db.add_all([org_one, org_two])

    member = User(id="user-member", email="parent@example.com")
    outsider = User(id="user-outsider", email="other@example.com")
    admin = User(id="user-admin", email="admin@example.com", is_admin=True)
    staff = User(id="user-staff", email="maker@windedvertigo.com")
    db.add_all([member, outsider, admin, staff])
    db.flush()

    db.add_all(
        [
            OrgMembership(user_id=member.id, org_id=org_one.id, role="admin"),
            OrgMembership(user_id=outsider.id, org_id=org_two.id, role="member"),
            Entitlement(
                org_id=org_one.id,
                pack_cache_id=tubes_pack.id,
                purchase_id="pi_123",
                granted_at=datetime(2026, 1, 1) - timedelta(days=1),
            ),
        ]
    )
    db.commit()

    return {
        "materials": {"box": box, "tube": tube, "scarf": scarf, "glitter": glitter},
        "playdates": {"fort": fort, "cape": cape, "tunnel": tunnel, "arch": arch},
        "packs": {"tubes": tubes_pack, "fabric": fabric_pack},
        "orgs": {"one": org_one, "two": org_two},
        "users": {"member": member, "outsider": outsider, "admin": admin, "staff": staff},
    }


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {issue_session_token(user.id)}"}

    return _headers
