"""
WhatsApp transport boundary

Inbound `wa.inbound.v1` events become InboundMessage values; outbound text goes
through the MCP `wa.send_message` tool.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import jsonschema
from jsonschema import ValidationError

from common.mcp_client import MCPClient

log = logging.getLogger(__name__)

INBOUND_EVENT_TYPE = "wa.inbound.v1"

INBOUND_EVENT_SCHEMA = {
    "type": "object",
    "required": ["type", "data"],
    "properties": {
        "type": {"type": "string"},
        "data": {
            "type": "object",
            "required": ["from"],
            "properties": {
                "from": {"type": "string"},
                "from_me": {"type": "boolean"},
                "text": {"type": ["string", "null"]},
                "message": {"type": ["object", "null"]},
                "kind": {"type": ["string", "null"]},
            },
        },
    },
}

# Wrappers that hide the real content one level down
_WRAPPERS = ("ephemeralMessage", "viewOnceMessage", "viewOnceMessageV2", "viewOnceMessageV2Extension")
_MAX_UNWRAP = 5


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str = ""
    from_me: bool = False
    has_content: bool = True
    kind: Optional[str] = None


def unwrap_message_content(message: dict | None) -> dict | None:
    """Peel ephemeral / view-once envelopes (bounded depth)."""
    if not message:
        return None
    m = message
    for _ in range(_MAX_UNWRAP):
        for key in _WRAPPERS:
            inner = (m.get(key) or {}).get("message")
            if inner:
                m = inner
                break
        else:
            break
    return m


def extract_text(message: dict | None) -> str:
    """First non-empty text carried by a message: body, caption, or button/list reply."""
    m = unwrap_message_content(message) or {}

    def dig(*path):
        node = m
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node if isinstance(node, str) and node else None

    candidates = (
        ("conversation",),
        ("extendedTextMessage", "text"),
        ("imageMessage", "caption"),
        ("videoMessage", "caption"),
        ("buttonsResponseMessage", "selectedDisplayText"),
        ("buttonsResponseMessage", "selectedButtonId"),
        ("listResponseMessage", "title"),
        ("listResponseMessage", "singleSelectReply", "selectedRowId"),
    )
    for path in candidates:
        value = dig(*path)
        if value:
            return value.strip()
    return ""


def parse_inbound_event(evt: dict) -> Optional[InboundMessage]:
    """
    Turn a bus event into an InboundMessage.

    Returns:
        None for other event types and for malformed events
    """
    if not isinstance(evt, dict) or evt.get("type") != INBOUND_EVENT_TYPE:
        return None
    try:
        jsonschema.validate(evt, INBOUND_EVENT_SCHEMA)
    except ValidationError as e:
        log.warning(f"[INBOUND] Malformed event dropped: {e.message}")
        return None

    data = evt["data"]
    raw = data.get("message")
    text = (data.get("text") or "").strip() or extract_text(raw)
    return InboundMessage(
        sender=data["from"].strip(),
        text=text,
        from_me=bool(data.get("from_me")),
        has_content=bool(text or raw),
        kind=data.get("kind"),
    )


# ---------- Outbound ----------
class MCPTransport:
    def __init__(self, mcp: MCPClient, timeout: float = 10):
        self.mcp = mcp
        self.timeout = timeout

    async def send(self, identifier: str, text: str):
        return await self.mcp.call("wa.send_message", {"to": identifier, "text": text}, timeout=self.timeout)


class ConsoleTransport:
    """Prints outbound messages; used by the local console runner."""

    async def send(self, identifier: str, text: str):
        print(f"\n[bot → {identifier}]\n{text}\n")
