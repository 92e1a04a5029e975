"""
Intake Orchestrator

Owns the session store, membership oracle, follow-up scheduler and reply
dispatcher for one bot instance, and runs each inbound message through them:

- unknown sender, no session  → new session at `choose`, entry menu
- known member, no session    → one AI fallback reply, no session
- live session                → one state-machine step, effects executed in order

Everything for one identifier runs under that identifier's lock; different
identifiers proceed independently.
"""
import logging
import time
import uuid

from common.keyed_lock import KeyedLock
from . import messages as M
from .dispatcher import ReplyDispatcher
from .fallback import FallbackResponder
from .flows import CompleteFlow, Links, SendReply, advance
from .followups import FollowupScheduler
from .membership import MembershipOracle
from .normalizers import canonical_phone, extract_identifier_address, is_ignored_address, session_key
from .records import build_row, collection_for
from .session_store import SessionStore
from .sheets import SheetsError
from .transport import InboundMessage

log = logging.getLogger(__name__)

RECORD_COMPLETED_EVENT = "intake.record.completed.v1"


class IntakeOrchestrator:
    def __init__(
        self,
        *,
        dispatcher: ReplyDispatcher,
        sessions: SessionStore,
        members: MembershipOracle,
        followups: FollowupScheduler,
        fallback: FallbackResponder,
        links: Links,
        sheets=None,
        publish=None,
        events_topic: str = "",
    ):
        self.dispatcher = dispatcher
        self.sessions = sessions
        self.members = members
        self.followups = followups
        self.fallback = fallback
        self.links = links
        self.sheets = sheets
        self.publish = publish
        self.events_topic = events_topic

    @classmethod
    def from_settings(cls, settings, transport, *, sheets=None, fallback=None, publish=None, rng=None):
        """Wire a complete orchestrator; sessions and reminders share one lock registry."""
        locks = KeyedLock()
        lo, hi = settings.reply_delay_bounds()
        dispatcher = ReplyDispatcher(transport, lo, hi, rng=rng)
        links = Links.from_settings(settings)
        return cls(
            dispatcher=dispatcher,
            sessions=SessionStore(locks),
            members=MembershipOracle(sheets),
            followups=FollowupScheduler(
                dispatcher, links, settings.followup_delays_seconds(), sheets=sheets, locks=locks,
            ),
            fallback=fallback or FallbackResponder(
                settings.MISTRAL_API_KEY,
                settings.MISTRAL_MODEL,
                settings.MISTRAL_BASE,
                settings.MISTRAL_TIMEOUT_SECONDS,
            ),
            links=links,
            sheets=sheets,
            publish=publish,
            events_topic=settings.TOPIC_INTAKE_EVENTS,
        )

    # ---------- Inbound ----------
    async def handle(self, message: InboundMessage):
        if message.from_me or not message.has_content:
            return
        if is_ignored_address(message.sender):
            return

        identifier = session_key(message.sender)
        # Lock entry must be the first suspension point so arrival order holds.
        async with self.sessions.lock(identifier):
            try:
                await self._handle_locked(identifier, message)
            except Exception as e:
                log.error(f"[HANDLE] Failed to process message from {identifier}: {e}", exc_info=True)

    async def _handle_locked(self, identifier: str, message: InboundMessage):
        sess = self.sessions.get(identifier)
        log.info(f"[HANDLE] {identifier} step={sess.step.value if sess else '-'} text='{message.text[:30]}'")

        if sess is None:
            phone = canonical_phone(extract_identifier_address(identifier))
            if await self.members.is_known_member(phone):
                await self._reply_with_fallback(identifier, message.text or "Hi")
                return
            # Stale reminders from an earlier interaction must not reach the new dialogue
            self.followups.cancel(identifier)
            self.sessions.create(identifier, phone)
            await self.dispatcher.send(identifier, M.ENTRY)
            return

        if not message.text:
            await self.dispatcher.send(identifier, M.SEND_TEXT)
            return

        transition = advance(sess, message.text, self.links)
        if transition.completed:
            self.sessions.remove(identifier)
        else:
            self.sessions.put(transition.session)

        for effect in transition.effects:
            if isinstance(effect, SendReply):
                await self.dispatcher.send(identifier, effect.text)
            elif isinstance(effect, CompleteFlow):
                await self._complete(effect)

    async def _reply_with_fallback(self, identifier: str, text: str):
        try:
            reply = await self.fallback.reply(text)
        except Exception as e:
            log.error(f"[AI] Fallback collaborator failed for {identifier}: {e}")
            reply = M.FALLBACK_REPLY
        await self.dispatcher.send(identifier, reply or M.FALLBACK_REPLY)

    # ---------- Completion ----------
    async def _complete(self, done: CompleteFlow):
        collection = collection_for(done.flow)
        row = build_row(done.flow, done.fields, self.links)

        saved = await self._persist(done.identifier, collection, row)
        if saved:
            self.members.remember(done.fields.get("contact_number") or done.phone, done.phone)

        self.followups.arm(done.identifier, done.flow, done.fields, fallback_phone=done.phone)
        log.info(f"[COMPLETE] {done.identifier} finished {done.flow.value} flow (saved={saved})")

        if saved:
            await self._publish_completed(done, collection, row)

    async def _persist(self, identifier: str, collection: str, row: list[str]) -> bool:
        if self.sheets is None:
            log.warning(f"[COMPLETE] Persistence disabled; {collection} record for {identifier} kept in memory only")
            return True
        try:
            await self.sheets.append_row(collection, row)
        except SheetsError as e:
            log.error(f"[COMPLETE] Failed to save {collection} record for {identifier}: {e}")
            return False
        return True

    async def _publish_completed(self, done: CompleteFlow, collection: str, row: list[str]):
        if not self.publish or not self.events_topic:
            return
        event = {
            "type": RECORD_COMPLETED_EVENT,
            "id": str(uuid.uuid4()),
            "time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "data": {"identifier": done.identifier, "flow": done.flow.value, "collection": collection, "row": row},
        }
        try:
            await self.publish(self.events_topic, key=done.identifier, value=event)
        except Exception as e:
            log.error(f"[COMPLETE] Failed to publish completion for {done.identifier}: {e}")

    async def shutdown(self):
        self.followups.cancel_all()
