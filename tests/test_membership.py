import asyncio

from agents.intake.membership import MembershipOracle
from agents.intake.records import PATIENTS, STUDENTS


def test_empty_phone_is_never_a_member(sheets):
    oracle = MembershipOracle(sheets)
    assert asyncio.run(oracle.is_known_member("")) is False
    assert sheets.reads == 0


def test_student_hit_skips_patient_lookup_and_caches(sheets):
    sheets.rows[STUDENTS].append(["STU-1", "Asha", "27", "+91 90000 00001"])
    oracle = MembershipOracle(sheets)

    async def scenario():
        assert await oracle.is_known_member("919000000001")
        assert sheets.reads == 1
        assert await oracle.is_known_member("9000000001")
        assert sheets.reads == 1

    asyncio.run(scenario())
    assert "9000000001" in oracle.known


def test_patient_lookup_after_student_miss(sheets):
    sheets.rows[PATIENTS].append(["PAT-1", "Jane", "34", "9876543210"])
    oracle = MembershipOracle(sheets)
    assert asyncio.run(oracle.is_known_member("9876543210"))
    assert sheets.reads == 2


def test_miss_is_not_cached(sheets):
    oracle = MembershipOracle(sheets)
    assert asyncio.run(oracle.is_known_member("9876543210")) is False
    assert oracle.known == set()


def test_lookup_failure_fails_open(sheets):
    sheets.rows[STUDENTS].append(["STU-1", "Asha", "27", "9000000001"])
    sheets.fail_reads = True
    oracle = MembershipOracle(sheets)
    assert asyncio.run(oracle.is_known_member("9000000001")) is False


def test_without_persistence_only_the_cache_answers():
    oracle = MembershipOracle(None)
    assert asyncio.run(oracle.is_known_member("9876543210")) is False
    oracle.remember("+91 98765 43210", "")
    assert oracle.known == {"9876543210"}
    assert asyncio.run(oracle.is_known_member("9876543210"))
