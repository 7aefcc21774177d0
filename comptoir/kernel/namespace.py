# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Namespace Helper — Redis key layout.

Conversation and response caches are keyed by tenant first, then user:
a user id is only unique inside its tenant.
"""

from __future__ import annotations


def get_history_key(tenant_id: str, user_id: str, conversation_id: str) -> str:
    """
    Conversation cache key.

    Example:
        get_history_key("t1", "u1", "c1") -> "chatHistory:t1:u1:c1"
    """
    return f"chatHistory:{tenant_id}:{user_id}:{conversation_id}"


def get_response_key(tenant_id: str, user_id: str, message: str) -> str:
    """
    Response cache key. Intentionally independent of the conversation.

    Example:
        get_response_key("t1", "u1", "Bonjour") -> "chatResponse:t1:u1:Bonjour"
    """
    return f"chatResponse:{tenant_id}:{user_id}:{message}"


def get_failed_jobs_key(queue_name: str) -> str:
    """
    Bounded list of jobs that exhausted their attempts.

    Example:
        get_failed_jobs_key("chat") -> "comptoir:jobs:failed:chat"
    """
    return f"comptoir:jobs:failed:{queue_name}"
