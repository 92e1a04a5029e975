"""
Sheet row layouts for completed intake records.

Both collections are append-only tables of positional string columns; row 0
is a header. The phone column is shared, the opt-out column is not.
"""
import time
from datetime import datetime, timezone
from typing import Optional

from .flows import Flow, Links
from .normalizers import canonical_phone, is_type1

READ_RANGE = "A:T"
APPEND_RANGE = "A:Z"
PHONE_COLUMN = 3
STUDENT_OPTOUT_COLUMN = 12
PATIENT_OPTOUT_COLUMN = 19

STUDENTS = "students"
PATIENTS = "patients"


def collection_for(flow: Flow) -> str:
    """Students have their own sheet; patient and other-concern records share one."""
    return STUDENTS if flow is Flow.STUDENT else PATIENTS


def optout_column_for(flow: Flow) -> int:
    return STUDENT_OPTOUT_COLUMN if flow is Flow.STUDENT else PATIENT_OPTOUT_COLUMN


def record_id(prefix: str, now_ms: Optional[int] = None) -> str:
    return f"{prefix}-{now_ms if now_ms is not None else int(time.time() * 1000)}"


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def student_row(d: dict, links: Links, *, rid: str | None = None, created_at: str | None = None) -> list[str]:
    return [
        rid or record_id("STU"),
        d.get("name", ""),
        d.get("age", ""),
        d.get("contact_number", ""),
        d.get("email", ""),
        d.get("best_describes", ""),
        d.get("best_describes", ""),
        d.get("training_goal", ""),
        d.get("webinar_interest") or "Yes",
        links.webinar,
        created_at or _iso_now(),
        "",
        "Yes",
    ]


def patient_row(d: dict, *, rid: str | None = None, created_at: str | None = None) -> list[str]:
    others = ""
    if d.get("other_concern"):
        others = d["other_concern"]
        if d.get("other_since"):
            others += f" | Since: {d['other_since']}"
    return [
        rid or record_id("PAT"),
        d.get("name", ""),
        d.get("age", ""),
        d.get("contact_number", ""),
        d.get("email", ""),
        "",
        d.get("current_medication", ""),
        d.get("diabetes_type", ""),
        d.get("diabetes_years", ""),
        d.get("latest_fasting_pp", ""),
        d.get("main_goal", ""),
        created_at or _iso_now(),
        "",
        others,
        "Yes" if is_type1(d.get("diabetes_type", "")) else "",
        d.get("type1_since_diagnosed", ""),
        d.get("type1_latest_values", ""),
        d.get("type1_high_low", ""),
        d.get("type1_symptoms", ""),
        "Yes",
    ]


def build_row(flow: Flow, fields: dict, links: Links) -> list[str]:
    if flow is Flow.STUDENT:
        return student_row(fields, links)
    return patient_row(fields)


# ---------- Scans ----------
def _cell(row: list, index: int) -> str:
    return str(row[index]) if index < len(row) and row[index] is not None else ""


def row_phone(row: list) -> str:
    return canonical_phone(_cell(row, PHONE_COLUMN))


def has_phone(rows: list[list], phone: str) -> bool:
    """True when any data row carries `phone` (canonical) in the phone column."""
    phone = canonical_phone(phone)
    if not phone:
        return False
    return any(row_phone(row or []) == phone for row in rows[1:])


def latest_row_for_phone(rows: list[list], phone: str) -> Optional[list]:
    """Most recent data row for `phone`, scanning from the end."""
    phone = canonical_phone(phone)
    if not phone:
        return None
    for row in reversed(rows[1:]):
        if row_phone(row or []) == phone:
            return row
    return None


def is_opted_out(row: list, column: int) -> bool:
    return _cell(row, column).strip().lower() == "no"
