import logging

import httpx
import jsonschema
from jsonschema import ValidationError

from .messages import AI_SYSTEM_PROMPT, FALLBACK_REPLY

log = logging.getLogger(__name__)

CHAT_COMPLETION_SCHEMA = {
    "type": "object",
    "required": ["choices"],
    "properties": {
        "choices": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["message"],
                "properties": {
                    "message": {
                        "type": "object",
                        "properties": {"content": {"type": ["string", "array", "null"]}},
                    },
                },
            },
        },
    },
}


def _content_text(content) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = [item.get("text") for item in content if isinstance(item, dict)]
        return " ".join(p for p in parts if isinstance(p, str)).strip()
    return ""


class FallbackResponder:
    """
    Short AI replies for people who already finished an intake.

    Never raises: without an API key, or on any failure, the canned
    acknowledgment is returned.
    """

    def __init__(self, api_key: str = "", model: str = "mistral-small-latest",
                 base: str = "https://api.mistral.ai", timeout: float = 15):
        self.api_key = api_key
        self.model = model
        self.endpoint = f"{base.rstrip('/')}/v1/chat/completions"
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def reply(self, user_text: str) -> str:
        if not self.enabled:
            return FALLBACK_REPLY

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": AI_SYSTEM_PROMPT},
                {"role": "user", "content": user_text},
            ],
            "temperature": 0.4,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(
                    self.endpoint,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                r.raise_for_status()
                body = r.json()
            jsonschema.validate(body, CHAT_COMPLETION_SCHEMA)
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            log.error(f"[AI] Fallback reply generation failed: {e}")
            return FALLBACK_REPLY

        text = _content_text(body["choices"][0]["message"].get("content"))
        return text or FALLBACK_REPLY
