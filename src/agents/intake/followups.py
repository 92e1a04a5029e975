"""
Follow-up Scheduler

After a flow completes, up to three one-shot reminders are armed for the
identifier. Each one is a FollowupTask descriptor that carries everything it
needs (target, text, delay, phone to re-check), so it never depends on the
session that produced it.

When a reminder fires it takes the identifier's lock, re-reads the latest
sheet row for the phone and stays silent if the opt-out column says "no".
Arming replaces any earlier set; `cancel` drops every reminder not yet fired.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from common.keyed_lock import KeyedLock
from . import messages as M
from .flows import Flow, Links
from .messages import format_message
from .normalizers import canonical_phone, is_type1
from .records import READ_RANGE, collection_for, is_opted_out, latest_row_for_phone, optout_column_for
from .sheets import SheetsError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FollowupTask:
    identifier: str
    text: str
    delay: float
    collection: str
    optout_column: int
    phone: str
    snapshot: dict = field(default_factory=dict, compare=False)


def followup_messages(flow: Flow, fields: dict, links: Links) -> list[str]:
    if flow is Flow.STUDENT:
        return [format_message(t, webinar_link=links.webinar) for t in M.STUDENT_FOLLOWUPS]
    consultation = links.type1 if is_type1(fields.get("diabetes_type", "")) else links.patient
    return [
        format_message(t, consultation_link=consultation, diabetes_webinar_link=links.diabetes_webinar)
        for t in M.PATIENT_FOLLOWUPS
    ]


def build_followups(identifier: str, flow: Flow, snapshot: dict, links: Links, delays: list[float],
                    fallback_phone: str = "") -> list[FollowupTask]:
    """Pair configured delays with the flow's messages, positionally."""
    texts = followup_messages(flow, snapshot, links)
    phone = canonical_phone(snapshot.get("contact_number") or fallback_phone)
    return [
        FollowupTask(
            identifier=identifier,
            text=text,
            delay=delay,
            collection=collection_for(flow),
            optout_column=optout_column_for(flow),
            phone=phone,
            snapshot=dict(snapshot),
        )
        for delay, text in zip(delays, texts)
    ]


class FollowupScheduler:
    def __init__(self, dispatcher, links: Links, delays: list[float], sheets=None, locks: KeyedLock | None = None,
                 sleep=asyncio.sleep):
        self.dispatcher = dispatcher
        self.links = links
        self.delays = list(delays)
        self.sheets = sheets
        self.locks = locks if locks is not None else KeyedLock()
        self._sleep = sleep
        self._pending: dict[str, set[asyncio.Task]] = {}

    def arm(self, identifier: str, flow: Flow, snapshot: dict, fallback_phone: str = "") -> list[FollowupTask]:
        self.cancel(identifier)
        tasks = build_followups(identifier, flow, snapshot, self.links, self.delays, fallback_phone)
        if not tasks:
            return tasks
        running = self._pending[identifier] = set()
        for task in tasks:
            t = asyncio.create_task(self._run(task), name=f"followup:{identifier}:{task.delay:g}")
            running.add(t)
            t.add_done_callback(lambda done, key=identifier: self._forget(key, done))
        log.info(f"[FOLLOWUP] Armed {len(tasks)} follow-ups for {identifier}")
        return tasks

    def cancel(self, identifier: str) -> int:
        """Cancel every pending reminder for `identifier`; no-op when none are armed."""
        running = self._pending.pop(identifier, None)
        if not running:
            return 0
        for t in running:
            t.cancel()
        log.info(f"[FOLLOWUP] Cancelled {len(running)} follow-ups for {identifier}")
        return len(running)

    def cancel_all(self):
        for identifier in list(self._pending):
            self.cancel(identifier)

    def pending(self, identifier: str) -> int:
        return len(self._pending.get(identifier, ()))

    def _forget(self, identifier: str, done: asyncio.Task):
        running = self._pending.get(identifier)
        if running is None or done not in running:
            return
        running.discard(done)
        if not running:
            del self._pending[identifier]

    async def should_send(self, task: FollowupTask) -> bool:
        """False only when the latest row for the phone is explicitly opted out."""
        if self.sheets is None or not task.phone:
            return True
        try:
            rows = await self.sheets.get_values(task.collection, READ_RANGE)
        except SheetsError as e:
            log.error(f"[FOLLOWUP] Opt-out check failed for {task.identifier}; defaulting to send: {e}")
            return True
        latest = latest_row_for_phone(rows, task.phone)
        if latest is None:
            return True
        return not is_opted_out(latest, task.optout_column)

    async def _run(self, task: FollowupTask):
        await self._sleep(task.delay)
        async with self.locks(task.identifier):
            try:
                if not await self.should_send(task):
                    log.info(f"[FOLLOWUP] {task.identifier} opted out; skipping")
                    return
                await self.dispatcher.send(task.identifier, task.text)
            except Exception as e:
                log.error(f"[FOLLOWUP] Reminder for {task.identifier} failed: {e}", exc_info=True)
