# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
ORM Models — Table definitions for Comptoir.

Tables:
  - tenants: Isolation root, one per shop or household
  - conversations: Chat threads (one user, one tenant)
  - conversation_messages: Append-only message list, ordered by seq
  - conversation_summaries: One compacted view per (tenant, conversation)
  - products / sales / employees / accounting_entries:
    business data read by the domain handlers
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, BigInteger, Boolean, Column, DateTime, ForeignKey, Index,
    Integer, Numeric, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB

from comptoir.storage.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


def _genuuid():
    return uuid.uuid4()


JSONType = JSON().with_variant(JSONB(), "postgresql")
Money = Numeric(12, 2, asdecimal=False)
# SQLite only autoincrements INTEGER PRIMARY KEY
SeqType = BigInteger().with_variant(Integer(), "sqlite")


class TenantScoped:
    """Mixin for rows owned by exactly one tenant. tenant_id never changes."""

    __tenant_required__ = True

    tenant_id = Column(String(64), nullable=False, index=True)


# ── Tenants ─────────────────────────────────────────────────

class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(64), primary_key=True)
    name = Column(String(256), nullable=False)
    owner_user_id = Column(String(64), nullable=True)
    # Business profile (nom, secteur, nombreEmployes, objectifs)
    # or household profile (nomFoyer, membres)
    profile = Column(JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<Tenant {self.id}>"


# ── Conversations ───────────────────────────────────────────

class Conversation(TenantScoped, Base):
    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=_genuuid)
    user_id = Column(String(64), nullable=False, index=True)
    title = Column(String(256), nullable=False, default="Nouvelle conversation")
    context = Column(JSONType, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    last_activity = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_conversations_tenant_user", "tenant_id", "user_id"),
    )

    def __repr__(self):
        return f"<Conversation {self.id} tenant={self.tenant_id}>"


class ConversationMessage(TenantScoped, Base):
    __tablename__ = "conversation_messages"

    seq = Column(SeqType, primary_key=True, autoincrement=True)
    id = Column(Uuid, nullable=False, unique=True, default=_genuuid)
    conversation_id = Column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False,
    )
    role = Column(String(16), nullable=False)  # user | assistant | system
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_messages_conversation_seq", "conversation_id", "seq"),
    )

    def __repr__(self):
        return f"<Message {self.conversation_id}#{self.seq} {self.role}>"


class ConversationSummary(TenantScoped, Base):
    __tablename__ = "conversation_summaries"

    id = Column(Uuid, primary_key=True, default=_genuuid)
    user_id = Column(String(64), nullable=True)
    conversation_id = Column(Uuid, nullable=False)
    summary = Column(Text, nullable=False)
    key_points = Column(JSONType, default=list)
    entities = Column(JSONType, default=list)  # [{"type": ..., "value": ...}]
    last_message_timestamp = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "conversation_id", name="uq_summary_tenant_conversation"),
    )

    def __repr__(self):
        return f"<ConversationSummary {self.conversation_id}>"


# ── Business Data ───────────────────────────────────────────

class Product(TenantScoped, Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=_genuuid)
    name = Column(String(256), nullable=False)
    category = Column(String(128), nullable=True)
    price = Column(Money, nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Sale(TenantScoped, Base):
    __tablename__ = "sales"

    id = Column(Uuid, primary_key=True, default=_genuuid)
    date = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    total_amount = Column(Money, nullable=False, default=0)
    status = Column(String(32), nullable=False, default="completed")
    # [{"product_id", "product_name", "quantity", "unit_price", "total_price"}]
    items = Column(JSONType, default=list)


class Employee(TenantScoped, Base):
    __tablename__ = "employees"

    id = Column(Uuid, primary_key=True, default=_genuuid)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    position = Column(String(128), nullable=True)
    email = Column(String(256), nullable=True)
    phone = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class AccountingEntry(TenantScoped, Base):
    __tablename__ = "accounting_entries"

    id = Column(Uuid, primary_key=True, default=_genuuid)
    type = Column(String(16), nullable=False)  # revenu | dépense
    category = Column(String(128), nullable=False, default="Autre")
    amount = Column(Money, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    description = Column(Text, nullable=True)
