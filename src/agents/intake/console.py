import asyncio, logging
from common.aconsole import ainput_multiline
from common.logging import setup_logging
from .config import settings
from .orchestrator import IntakeOrchestrator
from .sheets import build_sheets_client
from .transport import ConsoleTransport, InboundMessage

log = logging.getLogger("intake.console")

CONSOLE_SENDER = "919999999999@s.whatsapp.net"


async def main():
    setup_logging(settings.LOG_LEVEL)
    local = settings.model_copy(update={"REPLY_DELAY_MIN_SECONDS": 0, "REPLY_DELAY_MAX_SECONDS": 0})
    orchestrator = IntakeOrchestrator.from_settings(
        local, ConsoleTransport(), sheets=build_sheets_client(local)
    )

    # avoid emoji to keep Windows CP1252 happy
    print(f"[Console] Chatting as {CONSOLE_SENDER}. End a line with '\\' for multi-line replies, 'quit' to exit.")
    try:
        while True:
            text = (await ainput_multiline()).strip()
            if text.lower() == "quit":
                break
            await orchestrator.handle(InboundMessage(sender=CONSOLE_SENDER, text=text))
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await orchestrator.shutdown()

if __name__ == "__main__":
    asyncio.run(main())
