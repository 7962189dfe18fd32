"""
AI Completion Client
====================
Single-shot prompt -> text call against the Anthropic Messages API, plus the
JSON extraction used by callers that ask for structured output.
"""

import json
from typing import Any, Optional

import requests

from ..config import Config

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


class AIClientError(Exception):
    """The completion call failed or returned nothing usable"""


class AIClient:
    """Thin Anthropic Messages API client"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize client.

        Args:
            api_key: Anthropic API key (defaults to Config.ANTHROPIC_API_KEY)
            model: Model name (defaults to Config.AI_MODEL)
            max_tokens: Response token cap (defaults to Config.AI_MAX_TOKENS)
            session: HTTP session (injected in tests)
        """
        self.api_key = api_key if api_key is not None else Config.ANTHROPIC_API_KEY
        self.model = model or Config.AI_MODEL
        self.max_tokens = max_tokens or Config.AI_MAX_TOKENS
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def complete(self, prompt: str) -> str:
        """
        Send one user prompt and return the text of the reply.

        Raises:
            AIClientError: If the client is unconfigured or the call fails
        """
        if not self.is_configured:
            raise AIClientError("ANTHROPIC_API_KEY is not set")

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        response = self.session.post(
            ANTHROPIC_URL, headers=headers, json=payload, timeout=Config.API_TIMEOUT
        )
        if response.status_code != 200:
            raise AIClientError(f"Claude API error ({response.status_code})")

        try:
            return response.json()["content"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIClientError("Claude API returned an unexpected body") from e


def parse_json_response(text: str) -> Any:
    """
    Parse JSON from a model reply, stripping ```json fences.

    Raises:
        ValueError: If the reply holds no valid JSON
    """
    content = (text or "").strip()
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()
    return json.loads(content)
