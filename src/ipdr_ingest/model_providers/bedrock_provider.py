"""Bedrock model provider using the Converse API via boto3."""

from __future__ import annotations

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ipdr_ingest.core.exceptions import SuggestionError


class BedrockModelProvider:
    """IModelProvider backed by ``bedrock-runtime`` ``converse``."""

    def __init__(self, model_id: str, region: str = "us-east-1",
                 endpoint_url: str | None = None, temperature: float = 0.0,
                 max_tokens: int = 1024) -> None:
        self._model_id = model_id
        self._temperature = temperature
        self._max_tokens = max_tokens
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("bedrock-runtime", **kwargs)

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        system = [{"text": m["content"]} for m in messages if m.get("role") == "system"]
        conversation = [
            {"role": m["role"], "content": [{"text": m["content"]}]}
            for m in messages
            if m.get("role") in ("user", "assistant")
        ]
        request: dict[str, Any] = {
            "modelId": self._model_id,
            "messages": conversation,
            "inferenceConfig": {
                "temperature": kwargs.get("temperature", self._temperature),
                "maxTokens": kwargs.get("max_tokens", self._max_tokens),
            },
        }
        if system:
            request["system"] = system
        try:
            resp = self._client.converse(**request)
        except (ClientError, BotoCoreError) as exc:
            raise SuggestionError(f"Bedrock converse failed: {exc}") from exc

        blocks = resp.get("output", {}).get("message", {}).get("content", [])
        text = "".join(block.get("text", "") for block in blocks)
        if not text:
            raise SuggestionError("Bedrock returned an empty response")
        return text
