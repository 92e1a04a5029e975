"""
Normalizers for Inbound Text and Addresses

Canonicalizes raw chat text, yes/no replies, transport addresses and phone
numbers into comparable forms. Everything here is pure.
"""
import re
import logging
from enum import Enum
from typing import Optional

log = logging.getLogger(__name__)

PHONE_WIDTH = 10

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_DIGIT = re.compile(r"\D")
_LINE_BREAK = re.compile(r"\r?\n")

IGNORED_ADDRESSES = {"status@broadcast"}
IGNORED_SUFFIXES = ("@g.us", "@newsletter")


class Affirmation(str, Enum):
    YES = "Yes"
    NO = "No"


# ---------- Accepted Response Variations ----------
YES_TOKENS = {"yes", "y", "1", "haan", "ha"}
NO_TOKENS = {"no", "n", "2", "na", "nah"}


# ---------- Text ----------
def normalize_token(text: str) -> str:
    """
    Lowercase and keep ASCII letters and digits only.

    Examples:
        "Type 1"   → "type1"
        " HAAN! "  → "haan"
    """
    return _NON_ALNUM.sub("", str(text or "").lower())


def parse_affirmation(text: str) -> Optional[Affirmation]:
    """Return YES, NO, or None when the reply is ambiguous (caller re-prompts)."""
    token = normalize_token(text)
    if token in YES_TOKENS:
        return Affirmation.YES
    if token in NO_TOKENS:
        return Affirmation.NO
    return None


def is_type1(text: str) -> bool:
    return "type1" in normalize_token(text)


def parse_structured_lines(text: str, expected: list[str]) -> Optional[dict[str, str]]:
    """
    Map non-empty lines of a bulk reply onto field names, positionally.

    Args:
        text: Raw message, one answer per line
        expected: Field names in the order they were asked

    Returns:
        {field: line} with exactly len(expected) entries, or None when fewer
        non-empty lines than fields were sent. Extra trailing lines are ignored.
    """
    lines = [line.strip() for line in _LINE_BREAK.split(str(text or ""))]
    lines = [line for line in lines if line]
    if len(lines) < len(expected):
        log.debug(f"[NORMALIZE] Bulk reply has {len(lines)} lines, expected {len(expected)}")
        return None
    return {field: lines[i] for i, field in enumerate(expected)}


# ---------- Addresses & Phones ----------
def extract_identifier_address(address: str) -> str:
    """
    Strip the domain and device suffixes from a transport address.

    Examples:
        "919876543210:12@s.whatsapp.net" → "919876543210"
        "919876543210@s.whatsapp.net"    → "919876543210"
    """
    local = (address or "").split("@", 1)[0]
    return local.split(":", 1)[0]


def session_key(address: str) -> str:
    """Address with any device suffix removed, so fragments from one user share a session."""
    address = (address or "").strip()
    if "@" not in address:
        return extract_identifier_address(address)
    domain = address.split("@", 1)[1]
    return f"{extract_identifier_address(address)}@{domain}"


def canonical_phone(raw: str) -> str:
    """Digits only, keeping the last 10 when longer. Empty means unknown and never matches."""
    digits = _NON_DIGIT.sub("", str(raw or ""))
    if len(digits) > PHONE_WIDTH:
        return digits[-PHONE_WIDTH:]
    return digits


def is_ignored_address(address: str) -> bool:
    """Broadcast, group and channel addresses never get a dialogue."""
    if not address:
        return True
    return address in IGNORED_ADDRESSES or address.endswith(IGNORED_SUFFIXES)
