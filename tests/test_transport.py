import asyncio

import pytest

from agents.intake.transport import (
    INBOUND_EVENT_TYPE,
    InboundMessage,
    MCPTransport,
    extract_text,
    parse_inbound_event,
    unwrap_message_content,
)
from agents.intake.wa_loop import wa_loop
from conftest import USER, make_settings


def event(**data):
    return {"type": INBOUND_EVENT_TYPE, "data": {"from": USER, **data}}


def test_plain_text_event():
    msg = parse_inbound_event(event(text="  Hi  "))
    assert msg == InboundMessage(sender=USER, text="Hi")


def test_text_taken_from_raw_message_when_missing():
    msg = parse_inbound_event(event(message={"extendedTextMessage": {"text": "1"}}))
    assert msg.text == "1"
    assert msg.has_content


def test_media_without_caption_has_content_but_no_text():
    msg = parse_inbound_event(event(message={"imageMessage": {"url": "x"}}, kind="image"))
    assert msg.text == ""
    assert msg.has_content
    assert msg.kind == "image"


def test_empty_event_has_no_content():
    assert not parse_inbound_event(event()).has_content


def test_from_me_flag():
    assert parse_inbound_event(event(text="x", from_me=True)).from_me


@pytest.mark.parametrize("evt", [
    {"type": "wa.status.v1", "data": {"from": USER}},
    {"type": INBOUND_EVENT_TYPE},
    {"type": INBOUND_EVENT_TYPE, "data": {"text": "no sender"}},
    {"type": INBOUND_EVENT_TYPE, "data": {"from": 42}},
    "not a dict",
    None,
])
def test_unusable_events_are_dropped(evt):
    assert parse_inbound_event(evt) is None


def test_unwrap_nested_envelopes():
    inner = {"conversation": "deep"}
    wrapped = {"ephemeralMessage": {"message": {"viewOnceMessageV2": {"message": inner}}}}
    assert unwrap_message_content(wrapped) == inner
    assert extract_text(wrapped) == "deep"


def test_unwrap_is_bounded():
    m = {"conversation": "too deep"}
    for _ in range(8):
        m = {"ephemeralMessage": {"message": m}}
    assert extract_text(m) == ""


@pytest.mark.parametrize("message,expected", [
    ({"conversation": " hello "}, "hello"),
    ({"imageMessage": {"caption": "my report"}}, "my report"),
    ({"videoMessage": {"caption": "clip"}}, "clip"),
    ({"buttonsResponseMessage": {"selectedButtonId": "yes"}}, "yes"),
    ({"listResponseMessage": {"singleSelectReply": {"selectedRowId": "3"}}}, "3"),
    ({"conversation": "", "extendedTextMessage": {"text": "second"}}, "second"),
    ({}, ""),
    (None, ""),
])
def test_text_candidates(message, expected):
    assert extract_text(message) == expected


class FakeMCP:
    def __init__(self):
        self.calls = []

    async def call(self, tool_name, arguments, timeout=None):
        self.calls.append((tool_name, arguments, timeout))
        return {"ok": True}


def test_mcp_transport_uses_send_tool():
    mcp = FakeMCP()
    asyncio.run(MCPTransport(mcp, timeout=3).send(USER, "hello"))
    assert mcp.calls == [("wa.send_message", {"to": USER, "text": "hello"}, 3)]


class FakeBus:
    def __init__(self, records):
        self._records = records
        self.started = []
        self.stopped = False

    async def start_producer(self):
        self.started.append("producer")

    async def start_consumer(self, topic, group_id):
        self.started.append(("consumer", topic, group_id))

    async def records(self):
        for rec in self._records:
            yield None, rec
            await asyncio.sleep(0)

    async def stop(self):
        self.stopped = True


class RecordingOrchestrator:
    def __init__(self):
        self.handled = []

    async def handle(self, msg):
        self.handled.append(msg)


def test_loop_hands_valid_events_to_orchestrator():
    bus = FakeBus([event(text="Hi"), {"type": "other"}, event(text="1")])
    orch = RecordingOrchestrator()
    settings = make_settings(TOPIC_WA_IN="wa.in", GROUP_ID="g")

    async def scenario():
        await wa_loop(orch, bus, settings)
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert [m.text for m in orch.handled] == ["Hi", "1"]
    assert bus.started == [("consumer", "wa.in", "g")]
    assert bus.stopped


def test_loop_starts_producer_when_events_topic_set():
    bus = FakeBus([])
    settings = make_settings(TOPIC_INTAKE_EVENTS="intake.events")
    asyncio.run(wa_loop(RecordingOrchestrator(), bus, settings))
    assert bus.started[0] == "producer"


def test_bus_refuses_to_iterate_before_consumer_starts():
    from common.bus import Bus

    async def scenario():
        async for _ in Bus("localhost:1").records():
            pass

    with pytest.raises(RuntimeError):
        asyncio.run(scenario())
