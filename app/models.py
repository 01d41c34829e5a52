import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================================
# CONTENT (populated by the content sync, read-only here)
# ============================================================================


class Playdate(Base):
    __tablename__ = "playdates_cache"

    id = Column(String(36), primary_key=True, default=generate_id)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    title = Column(String(500), nullable=False)
    headline = Column(Text, nullable=True)
    release_channel = Column(String(50), nullable=True)  # sampler, pack-only, internal
    status = Column(String(50), nullable=False, default="draft")  # draft, ready
    primary_function = Column(String(255), nullable=True)
    arc_emphasis = Column(JSON, default=list, nullable=False)
    context_tags = Column(JSON, default=list, nullable=False)
    age_range = Column(String(100), nullable=True)
    tinkering_tier = Column(String(100), nullable=True)
    cover_url = Column(String(1000), nullable=True)  # added by a later migration
    gallery_visible_fields = Column(JSON, nullable=True)  # added by a later migration
    friction_dial = Column(Integer, nullable=True)  # 1-5
    start_in_120s = Column(Boolean, default=False, nullable=False)
    required_forms = Column(JSON, default=list, nullable=False)
    slots_optional = Column(JSON, default=list, nullable=False)
    # Entitled-only guide fields
    slots_notes = Column(Text, nullable=True)
    rails_sentence = Column(Text, nullable=True)
    find = Column(Text, nullable=True)
    fold = Column(Text, nullable=True)
    unfold = Column(Text, nullable=True)
    find_again_mode = Column(String(255), nullable=True)
    find_again_prompt = Column(Text, nullable=True)
    substitutions_notes = Column(Text, nullable=True)
    # Collective-only
    design_rationale = Column(Text, nullable=True)
    developmental_notes = Column(Text, nullable=True)
    author_notes = Column(Text, nullable=True)
    # Internal-only
    ip_tier = Column(String(50), nullable=True)
    notion_id = Column(String(64), unique=True, nullable=True)
    notion_last_edited = Column(DateTime, nullable=True)
    synced_at = Column(DateTime, nullable=True)

    materials = relationship("PlaydateMaterial", back_populates="playdate", cascade="all, delete-orphan")
    packs = relationship("PackPlaydate", back_populates="playdate", cascade="all, delete-orphan")


class Material(Base):
    __tablename__ = "materials_cache"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(500), nullable=False)
    form_primary = Column(String(100), nullable=True)
    functions = Column(JSON, default=list, nullable=False)
    context_tags = Column(JSON, default=list, nullable=False)
    connector_modes = Column(JSON, default=list, nullable=True)
    shareability = Column(String(100), nullable=True)
    min_qty_size = Column(String(255), nullable=True)
    examples_notes = Column(Text, nullable=True)
    source = Column(Text, nullable=True)
    generation_notes = Column(Text, nullable=True)
    generation_prompts = Column(JSON, nullable=True)
    do_not_use = Column(Boolean, default=False, nullable=False)
    do_not_use_reason = Column(Text, nullable=True)
    notion_id = Column(String(64), unique=True, nullable=True)
    notion_last_edited = Column(DateTime, nullable=True)
    synced_at = Column(DateTime, nullable=True)


class PlaydateMaterial(Base):
    __tablename__ = "playdate_materials"

    playdate_id = Column(String(36), ForeignKey("playdates_cache.id", ondelete="CASCADE"), primary_key=True)
    material_id = Column(String(36), ForeignKey("materials_cache.id", ondelete="CASCADE"), primary_key=True)

    playdate = relationship("Playdate", back_populates="materials")
    material = relationship("Material")


class Pack(Base):
    __tablename__ = "packs_cache"

    id = Column(String(36), primary_key=True, default=generate_id)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    title = Column(String(500), nullable=False)
    status = Column(String(50), nullable=False, default="draft")

    playdates = relationship("PackPlaydate", back_populates="pack", cascade="all, delete-orphan")


class PackPlaydate(Base):
    __tablename__ = "pack_playdates"

    pack_id = Column(String(36), ForeignKey("packs_cache.id", ondelete="CASCADE"), primary_key=True)
    playdate_id = Column(String(36), ForeignKey("playdates_cache.id", ondelete="CASCADE"), primary_key=True)

    pack = relationship("Pack", back_populates="playdates")
    playdate = relationship("Playdate", back_populates="packs")


# ============================================================================
# ACCOUNTS, ENTITLEMENTS, AUDIT
# ============================================================================


class Organisation(Base):
    __tablename__ = "organisations"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    memberships = relationship("OrgMembership", back_populates="user", cascade="all, delete-orphan")


class OrgMembership(Base):
    __tablename__ = "org_memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    org_id = Column(String(36), ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(50), nullable=False, default="member")  # admin, member
    joined_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="memberships")
    organisation = relationship("Organisation")


class Entitlement(Base):
    __tablename__ = "entitlements"
    __table_args__ = (UniqueConstraint("org_id", "pack_cache_id", name="uq_entitlement_org_pack"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    org_id = Column(String(36), ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True)
    pack_cache_id = Column(String(36), ForeignKey("packs_cache.id", ondelete="CASCADE"), nullable=False)
    purchase_id = Column(String(255), nullable=True)
    granted_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)  # null = never expires
    revoked_at = Column(DateTime, nullable=True)  # soft delete

    organisation = relationship("Organisation")
    pack = relationship("Pack")


class AccessAuditLog(Base):
    __tablename__ = "access_audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)
    org_id = Column(String(36), nullable=True)
    playdate_id = Column(String(36), nullable=True)
    pack_id = Column(String(36), nullable=True)
    action = Column(String(100), nullable=False)
    ip_address = Column(String(64), nullable=True)
    fields_accessed = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
