# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for ComptoirSettings configuration."""

from comptoir.core.config import ComptoirSettings


class TestComptoirSettings:
    def test_defaults(self):
        s = ComptoirSettings(_env_file=None, DASHSCOPE_API_KEY="test-key")
        assert s.REDIS_URL == "redis://localhost:6379/0"
        assert "postgresql" in s.DATABASE_URL
        assert s.LOG_LEVEL == "INFO"
        assert s.COMPTOIR_ENV == "dev"
        assert s.CHAT_HISTORY_TTL == 3600
        assert s.RESPONSE_CACHE_TTL == 600
        assert s.SUMMARY_TRIGGER_TURNS == 5
        assert s.CHAT_JOB_MAX_ATTEMPTS == 5
        assert s.SUMMARY_JOB_MAX_ATTEMPTS == 3

    def test_broker_defaults_to_redis(self):
        s = ComptoirSettings(_env_file=None, REDIS_URL="redis://custom:6380/1")
        assert s.broker_url == "redis://custom:6380/1"
        assert s.result_backend == "redis://custom:6380/1"

    def test_custom_values(self):
        s = ComptoirSettings(
            _env_file=None,
            CELERY_BROKER_URL="amqp://guest@rabbit//",
            DASHSCOPE_API_KEY="sk-test",
            DASHSCOPE_ROUTER_MODEL="qwen-max",
            SUMMARY_TRIGGER_TURNS=8,
        )
        assert s.broker_url == "amqp://guest@rabbit//"
        assert s.DASHSCOPE_API_KEY == "sk-test"
        assert s.DASHSCOPE_ROUTER_MODEL == "qwen-max"
        assert s.SUMMARY_TRIGGER_TURNS == 8
