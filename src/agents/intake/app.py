import asyncio, logging
from typing import Dict, Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from common.bus import Bus
from common.logging import setup_logging
from .config import settings
from .transport import InboundMessage
from .wa_loop import build_orchestrator, wa_loop

log = logging.getLogger("intake.app")


class InboundRequest(BaseModel):
    sender: str
    text: str = ""
    from_me: bool = False


def build_app(orchestrator=None, start_loop: bool = True) -> FastAPI:
    setup_logging(settings.LOG_LEVEL)
    app = FastAPI(title="clinic-intake-agent")
    bus = Bus(brokers=settings.KAFKA_BROKERS)
    app.state.orchestrator = orchestrator or build_orchestrator(settings, bus)

    @app.get("/healthz")
    def healthz(): return {"ok": True}

    @app.post("/agents/intake/inbound")
    async def inbound(request: InboundRequest):
        """Feed one message through the orchestrator without going through Kafka."""
        sender = request.sender.strip()
        text = request.text.strip()
        if not sender:
            raise HTTPException(status_code=422, detail="sender required (e.g. 919876543210@s.whatsapp.net)")
        await app.state.orchestrator.handle(
            InboundMessage(sender=sender, text=text, from_me=request.from_me, has_content=bool(text))
        )
        return {"ok": True}

    @app.get("/agents/intake/sessions/{identifier}")
    async def get_session(identifier: str) -> Dict[str, Any]:
        sess = app.state.orchestrator.sessions.get(identifier)
        if sess is None:
            raise HTTPException(status_code=404, detail="no live session")
        return {
            "identifier": sess.identifier,
            "phone": sess.phone,
            "flow": sess.flow.value,
            "step": sess.step.value,
            "fields": sess.fields,
            "pending_followups": app.state.orchestrator.followups.pending(identifier),
        }

    @app.on_event("startup")
    async def startup():
        app.state.t = None
        if start_loop:
            app.state.t = asyncio.create_task(wa_loop(app.state.orchestrator, bus, settings))

    @app.on_event("shutdown")
    async def shutdown():
        if app.state.t:
            app.state.t.cancel()
        await app.state.orchestrator.shutdown()

    return app
