"""Mock model provider for local development and testing.

Returns canned responses. No real LLM calls.
"""

from __future__ import annotations

import json
from typing import Any

from ipdr_ingest.core.exceptions import SuggestionError


class MockModelProvider:
    """IModelProvider implementation that returns deterministic mock responses."""

    def __init__(self, default_response: str = "{}", fail: bool = False) -> None:
        self._default_response = default_response
        self._canned_responses: dict[str, str] = {}
        self._fail = fail
        self.calls: list[list[dict[str, str]]] = []

    def set_response(self, prompt_contains: str, response: str) -> None:
        """Register a canned response for prompts containing a keyword."""
        self._canned_responses[prompt_contains] = response

    def set_mapping(self, mapping: dict[str, str | None], fenced: bool = False) -> None:
        """Answer every prompt with ``mapping`` as JSON, optionally inside a markdown fence."""
        payload = json.dumps(mapping, indent=2)
        self._default_response = f"```json\n{payload}\n```\n" if fenced else payload

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        self.calls.append(messages)
        if self._fail:
            raise SuggestionError("Mock provider configured to fail")
        last_content = messages[-1].get("content", "") if messages else ""
        for keyword, response in self._canned_responses.items():
            if keyword in last_content:
                return response
        return self._default_response
