import pytest

from agents.intake.config import Settings
from agents.intake.orchestrator import IntakeOrchestrator
from agents.intake.records import PATIENTS, STUDENTS
from agents.intake.sheets import SheetsError

USER = "919876543210@s.whatsapp.net"


class FakeTransport:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()

    async def send(self, identifier: str, text: str):
        if text in self.fail_on:
            raise RuntimeError("transport down")
        self.sent.append((identifier, text))

    def texts(self, identifier: str = USER) -> list[str]:
        return [t for ident, t in self.sent if ident == identifier]


class FakeSheets:
    """In-memory collections; row 0 is a header like the real sheets."""

    def __init__(self):
        self.rows = {STUDENTS: [["id", "name", "age", "phone"]], PATIENTS: [["id", "name", "age", "phone"]]}
        self.reads = 0
        self.fail_reads = False
        self.fail_appends = False

    async def get_values(self, collection: str, cell_range: str):
        self.reads += 1
        if self.fail_reads:
            raise SheetsError("read failed")
        return [list(r) for r in self.rows[collection]]

    async def append_row(self, collection: str, row):
        if self.fail_appends:
            raise SheetsError("append failed")
        self.rows[collection].append(list(row))


class FakeFallback:
    def __init__(self, reply="Happy to help!", fail=False):
        self._reply = reply
        self.fail = fail
        self.calls: list[str] = []

    async def reply(self, text: str) -> str:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("llm unavailable")
        return self._reply


def make_settings(**overrides) -> Settings:
    values = {
        "REPLY_DELAY_MIN_SECONDS": 0,
        "REPLY_DELAY_MAX_SECONDS": 0,
        "FOLLOWUP_HOURS_1": 0.00001,  # 36 ms
        "FOLLOWUP_HOURS_2": 0.00002,
        "FOLLOWUP_HOURS_3": 0.00003,
        "PATIENT_LINK": "https://example.test/patient",
        "DIABETES_WEBINAR_LINK": "https://example.test/diabetes-webinar",
        "TYPE1_LINK": "https://example.test/type1",
        "WEBINAR_LINK": "https://example.test/webinar",
        "OTHER_LINK": "",
        "MISTRAL_API_KEY": "",
        "TOPIC_INTAKE_EVENTS": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sheets():
    return FakeSheets()


@pytest.fixture
def fallback():
    return FakeFallback()


@pytest.fixture
def make_orchestrator(transport, fallback):
    def factory(sheets=None, **overrides):
        return IntakeOrchestrator.from_settings(
            make_settings(**overrides), transport, sheets=sheets, fallback=fallback
        )
    return factory
