"""Suggestion collaborators selected by ``LLMConfig.provider``."""

from __future__ import annotations

from ipdr_ingest.core.config import LLMConfig
from ipdr_ingest.core.protocols import IModelProvider
from ipdr_ingest.model_providers.bedrock_provider import BedrockModelProvider
from ipdr_ingest.model_providers.mock_provider import MockModelProvider


def create_model_provider(config: LLMConfig) -> IModelProvider:
    if config.provider == "bedrock":
        return BedrockModelProvider(
            model_id=config.bedrock_model,
            region=config.region,
            endpoint_url=config.endpoint_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    return MockModelProvider()
