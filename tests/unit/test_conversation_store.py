# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for ConversationStore (durable history + cache)."""

import asyncio
import uuid

import pytest

from comptoir.core.errors import NotFoundError, ValidationError
from comptoir.core.tenant import tenant_scope
from comptoir.kernel.namespace import get_history_key
from comptoir.memory.chat_store import ChatMessage, ConversationCache
from comptoir.memory.conversation_store import ConversationStore, parse_conversation_id
from comptoir.storage.repositories import ConversationRepository

TENANT = "shop_a"
USER = "user_001"


@pytest.fixture
def store(database, mock_redis):
    return ConversationStore(
        ConversationRepository(database.session_factory),
        ConversationCache(mock_redis, ttl=3600),
    )


class TestParseConversationId:
    def test_valid(self):
        cid = uuid.uuid4()
        assert parse_conversation_id(str(cid)) == cid
        assert parse_conversation_id(cid) is cid

    @pytest.mark.parametrize("bad", ["", "abc", "1234", None])
    def test_invalid_raises(self, bad):
        with pytest.raises(ValidationError):
            parse_conversation_id(bad)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_create_conversation(self, store):
        conv = await store.create_conversation(USER, TENANT)
        assert conv.tenant_id == TENANT
        assert conv.user_id == USER
        assert conv.is_active is True
        assert conv.title == "Nouvelle conversation"
        with tenant_scope(TENANT):
            assert await store.get_history(USER, conv.id) == []

    @pytest.mark.asyncio
    async def test_resolve_existing(self, store):
        conv = await store.create_conversation(USER, TENANT)
        resolved = await store.resolve_conversation(USER, TENANT, str(conv.id))
        assert resolved.id == conv.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("given", [None, "", "pas-un-uuid", str(uuid.uuid4())])
    async def test_resolve_creates_when_missing_or_invalid(self, store, given):
        resolved = await store.resolve_conversation(USER, TENANT, given)
        assert resolved.id is not None
        assert str(resolved.id) != given

    @pytest.mark.asyncio
    async def test_resolve_foreign_tenant_creates_new(self, store):
        foreign = await store.create_conversation(USER, "shop_b")
        resolved = await store.resolve_conversation(USER, TENANT, str(foreign.id))
        assert resolved.id != foreign.id
        assert resolved.tenant_id == TENANT

    @pytest.mark.asyncio
    async def test_get_conversation_is_tenant_scoped(self, store):
        conv = await store.create_conversation(USER, "shop_b")
        with tenant_scope(TENANT):
            assert await store.get_conversation(USER, conv.id) is None
        with tenant_scope("shop_b"):
            assert (await store.get_conversation(USER, conv.id)).id == conv.id


class TestAppend:
    @pytest.mark.asyncio
    async def test_append_order_is_preserved(self, store):
        conv = await store.create_conversation(USER, TENANT)
        for i in range(4):
            await store.append_turn(
                USER, TENANT, conv.id,
                ChatMessage("user", f"question {i}"),
                ChatMessage("assistant", f"réponse {i}"),
            )
        with tenant_scope(TENANT):
            history = await store.get_history(USER, conv.id)
        assert [m.content for m in history] == [
            text for i in range(4) for text in (f"question {i}", f"réponse {i}")
        ]

    @pytest.mark.asyncio
    async def test_append_refreshes_cache(self, store, mock_redis):
        conv = await store.create_conversation(USER, TENANT)
        await store.append_message(USER, TENANT, conv.id, ChatMessage("user", "Bonjour"))
        cached = await mock_redis.get(get_history_key(TENANT, USER, str(conv.id)))
        assert cached is not None
        assert "Bonjour" in cached
        assert await mock_redis.ttl(get_history_key(TENANT, USER, str(conv.id))) > 0

    @pytest.mark.asyncio
    async def test_cache_miss_loads_from_durable_store(self, store, mock_redis):
        conv = await store.create_conversation(USER, TENANT)
        await store.append_message(USER, TENANT, conv.id, ChatMessage("user", "Bonjour"))
        await mock_redis.flushall()
        with tenant_scope(TENANT):
            history = await store.get_history(USER, conv.id)
        assert [m.content for m in history] == ["Bonjour"]
        assert await mock_redis.exists(get_history_key(TENANT, USER, str(conv.id)))

    @pytest.mark.asyncio
    async def test_same_message_ids_are_stored_once(self, store):
        conv = await store.create_conversation(USER, TENANT)
        user_msg = ChatMessage("user", "Bonjour", msg_id=str(uuid.uuid4()))
        reply = ChatMessage("assistant", "Bonjour !", msg_id=str(uuid.uuid4()))
        await store.append_turn(USER, TENANT, conv.id, user_msg, reply)
        history = await store.append_turn(USER, TENANT, conv.id, user_msg, reply)
        assert len(history) == 2

    @pytest.mark.asyncio
    async def test_append_to_unknown_conversation_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.append_message(USER, TENANT, uuid.uuid4(), ChatMessage("user", "?"))

    @pytest.mark.asyncio
    async def test_append_to_foreign_conversation_raises(self, store):
        conv = await store.create_conversation(USER, "shop_b")
        with pytest.raises(NotFoundError):
            await store.append_message(USER, TENANT, conv.id, ChatMessage("user", "intrus"))

    @pytest.mark.asyncio
    async def test_concurrent_appends_all_land(self, store):
        conv = await store.create_conversation(USER, TENANT)
        await asyncio.gather(*[
            store.append_message(USER, TENANT, conv.id, ChatMessage("user", f"m{i}"))
            for i in range(5)
        ])
        with tenant_scope(TENANT):
            history = await store.get_history(USER, conv.id)
        assert sorted(m.content for m in history) == [f"m{i}" for i in range(5)]
