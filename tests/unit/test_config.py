"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

from ipdr_ingest.core.config import AppSettings, LLMConfig, MappingConfig, PipelineConfig


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.llm.provider == "mock"
    assert settings.storage.backend == "local"
    assert settings.redis.enabled is False


def test_llm_config_defaults():
    config = LLMConfig()
    assert config.provider == "mock"
    assert config.temperature == 0.0


def test_mapping_thresholds():
    config = MappingConfig()
    assert config.confidence_threshold == 0.6
    assert config.similarity_threshold == 0.7
    assert config.coverage_threshold == 0.6
    assert config.cache_ttl == 86400


def test_env_override(monkeypatch):
    monkeypatch.setenv("IPDR_PIPELINE_BATCH_SIZE", "50")
    monkeypatch.setenv("IPDR_LLM_PROVIDER", "bedrock")
    assert PipelineConfig().batch_size == 50
    assert LLMConfig().provider == "bedrock"
