import logging

from .normalizers import canonical_phone
from .records import PATIENTS, READ_RANGE, STUDENTS, has_phone
from .sheets import SheetsError

log = logging.getLogger(__name__)


class MembershipOracle:
    """
    Answers "does this phone already have a completed record?"

    The sheets are authoritative; `known` is a write-through cache filled on
    lookup hits and on every successful save. Lookups fail open.
    """

    def __init__(self, sheets=None):
        self.sheets = sheets
        self.known: set[str] = set()

    def remember(self, *phones: str):
        for phone in phones:
            phone = canonical_phone(phone)
            if phone:
                self.known.add(phone)

    async def _in_collection(self, collection: str, phone: str) -> bool:
        try:
            rows = await self.sheets.get_values(collection, READ_RANGE)
        except SheetsError as e:
            log.error(f"[MEMBER] Lookup in {collection} failed for {phone}: {e}")
            return False
        return has_phone(rows, phone)

    async def is_known_member(self, phone: str) -> bool:
        phone = canonical_phone(phone)
        if not phone:
            return False
        if phone in self.known:
            return True
        if self.sheets is None:
            return False

        found = await self._in_collection(STUDENTS, phone) or await self._in_collection(PATIENTS, phone)
        if found:
            self.known.add(phone)
            log.info(f"[MEMBER] {phone} found in sheets")
        return found
