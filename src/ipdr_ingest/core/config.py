"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class LLMConfig(BaseSettings):
    """Mapping-suggestion model provider configuration."""

    model_config = {"env_prefix": "IPDR_LLM_"}

    provider: Literal["mock", "bedrock"] = "mock"
    bedrock_model: str = "anthropic.claude-3-5-haiku-20241022-v1:0"
    region: str = "us-east-1"
    endpoint_url: str | None = None
    temperature: float = 0.0
    max_tokens: int = 1024


class MappingConfig(BaseSettings):
    """Thresholds for fuzzy matching and suggestion coverage."""

    model_config = {"env_prefix": "IPDR_MAPPING_"}

    confidence_threshold: float = 0.6
    similarity_threshold: float = 0.7
    coverage_threshold: float = 0.6
    cache_ttl: int = 86400  # 24 hr


class PipelineConfig(BaseSettings):
    """Streaming pipeline sizing."""

    model_config = {"env_prefix": "IPDR_PIPELINE_"}

    queue_size: int = 8  # batches in flight between stages
    batch_size: int = 500
    max_diagnostics: int = 100
    log_diagnostics: int = 5


class StorageConfig(BaseSettings):
    """Upload store and bulk-load sink configuration."""

    model_config = {"env_prefix": "IPDR_STORAGE_"}

    backend: Literal["local", "s3"] = "local"
    upload_dir: str = "uploads"
    output_dir: str = "output"
    bucket: str = "ipdr-ingest"
    output_prefix: str = "canonical/"
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache for mapping suggestions."""

    model_config = {"env_prefix": "IPDR_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "IPDR_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    llm: LLMConfig = LLMConfig()
    mapping: MappingConfig = MappingConfig()
    pipeline: PipelineConfig = PipelineConfig()
    storage: StorageConfig = StorageConfig()
    redis: RedisConfig = RedisConfig()
