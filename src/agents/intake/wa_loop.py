"""
WhatsApp Intake Agent - Kafka loop

Consumes `wa.inbound.v1` events and hands each one to the orchestrator in its
own task. Per-identifier ordering is enforced by the orchestrator's locks, so
the loop itself never waits on a slow conversation.
"""
import asyncio
import logging

from common.bus import Bus
from common.mcp_client import MCPClient
from .config import Settings, settings as default_settings
from .orchestrator import IntakeOrchestrator
from .sheets import build_sheets_client
from .transport import MCPTransport, parse_inbound_event

log = logging.getLogger(__name__)


def build_orchestrator(settings: Settings, bus: Bus | None = None) -> IntakeOrchestrator:
    sheets = build_sheets_client(settings)
    if sheets is None:
        log.warning("[BOOT] Google Sheets disabled (check GOOGLE_SHEET_ID and service account env)")
    else:
        log.info("[BOOT] Google Sheets enabled")

    transport = MCPTransport(MCPClient(base=settings.MCP_BASE), timeout=settings.MCP_TIMEOUT_SECONDS)
    publish = bus.publish if bus and settings.TOPIC_INTAKE_EVENTS else None
    return IntakeOrchestrator.from_settings(settings, transport, sheets=sheets, publish=publish)


async def wa_loop(orchestrator: IntakeOrchestrator, bus: Bus, settings: Settings = default_settings):
    """
    Main Kafka consumer loop for WhatsApp messages
    """
    if settings.TOPIC_INTAKE_EVENTS:
        await bus.start_producer()
    await bus.start_consumer(settings.TOPIC_WA_IN, group_id=settings.GROUP_ID)
    log.info("[KAFKA] Consumer started, listening for WhatsApp messages...")

    inflight: set[asyncio.Task] = set()
    try:
        async for _key, evt in bus.records():
            msg = parse_inbound_event(evt)
            if msg is None:
                continue

            log.info(f"[KAFKA] Received from {msg.sender}: '{msg.text[:30]}...'")
            t = asyncio.create_task(orchestrator.handle(msg))
            inflight.add(t)
            t.add_done_callback(inflight.discard)
    finally:
        for t in inflight:
            t.cancel()
        await bus.stop()
        log.info("[KAFKA] Consumer stopped")
