# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for namespace helper."""

from comptoir.kernel.namespace import get_failed_jobs_key, get_history_key, get_response_key


class TestHistoryKey:
    def test_basic(self):
        assert get_history_key("t1", "u1", "c1") == "chatHistory:t1:u1:c1"

    def test_conversation_isolation(self):
        assert get_history_key("t1", "u1", "c1") != get_history_key("t1", "u1", "c2")

    def test_tenant_isolation(self):
        assert get_history_key("t1", "u1", "c1") != get_history_key("t2", "u1", "c1")


class TestResponseKey:
    def test_basic(self):
        assert get_response_key("t1", "u1", "Bonjour") == "chatResponse:t1:u1:Bonjour"

    def test_user_isolation(self):
        assert get_response_key("t1", "u1", "Bonjour") != get_response_key("t1", "u2", "Bonjour")

    def test_tenant_isolation(self):
        assert get_response_key("t1", "u1", "Bonjour") != get_response_key("t2", "u1", "Bonjour")


class TestFailedJobsKey:
    def test_basic(self):
        assert get_failed_jobs_key("chat") == "comptoir:jobs:failed:chat"
        assert get_failed_jobs_key("summary") != get_failed_jobs_key("chat")
