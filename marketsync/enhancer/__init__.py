"""AI completion client used for mapping suggestions"""

from .ai_client import AIClient, AIClientError, parse_json_response

__all__ = [
    "AIClient",
    "AIClientError",
    "parse_json_response",
]
