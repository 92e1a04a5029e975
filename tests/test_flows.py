"""
State machine transitions, checked without any I/O.
"""
import pytest

from agents.intake import messages as M
from agents.intake.flows import (
    CompleteFlow,
    Flow,
    Links,
    Session,
    Step,
    advance,
    new_session,
)

LINKS = Links(
    patient="https://example.test/patient",
    diabetes_webinar="https://example.test/diabetes-webinar",
    type1="https://example.test/type1",
    other="https://example.test/other",
    webinar="https://example.test/webinar",
)

PATIENT_LINES = "Jane Doe\n34\njane@x.com\nMetformin\n9876543210"


def run(session, *inputs):
    """Feed inputs in order; return the last transition and all replies."""
    replies = []
    transition = None
    for text in inputs:
        transition = advance(session, text, LINKS)
        replies.extend(transition.replies)
        session = transition.session
    return transition, replies


def fresh():
    return new_session("919876543210@s.whatsapp.net", "9876543210")


# ---------- Router ----------
@pytest.mark.parametrize("text,flow,step,intro", [
    ("1", Flow.PATIENT, Step.P_COLLECT, M.DIABETES_INTRO),
    ("Diabetes care", Flow.PATIENT, Step.P_COLLECT, M.DIABETES_INTRO),
    ("2", Flow.OTHER, Step.O_COLLECT, M.OTHER_INTRO),
    ("other health concerns", Flow.OTHER, Step.O_COLLECT, M.OTHER_INTRO),
    ("3", Flow.STUDENT, Step.S_COLLECT, M.STUDENT_INTRO),
    ("Professional certification", Flow.STUDENT, Step.S_COLLECT, M.STUDENT_INTRO),
])
def test_router_branches(text, flow, step, intro):
    t = advance(fresh(), text, LINKS)
    assert (t.session.flow, t.session.step) == (flow, step)
    assert t.replies == [intro]


def test_router_unmatched_reprompts_without_committing():
    t = advance(fresh(), "what is this", LINKS)
    assert t.session.flow is Flow.NONE
    assert t.session.step is Step.CHOOSE
    assert t.replies == [M.CHOOSE_REPROMPT]


def test_new_session_prefills_contact_number():
    assert fresh().fields == {"contact_number": "9876543210"}


def test_flow_none_requires_choose_step():
    with pytest.raises(ValueError):
        Session(identifier="x", phone="", flow=Flow.NONE, step=Step.P_COLLECT)


def test_flow_cannot_be_reassigned():
    committed = advance(fresh(), "1", LINKS).session
    with pytest.raises(ValueError):
        committed.enter(Flow.STUDENT, Step.S_COLLECT)


@pytest.mark.parametrize("inputs", [
    ["1", PATIENT_LINES, "no", "garbage", PATIENT_LINES, "yes", "Type 2", "3"],
    ["2", "short"],
    ["3", "a\nb\nc\nd", "maybe", "no", "a\nb\nc\nd", "y", "A", "B", "no", "hmm"],
    ["1", PATIENT_LINES, "1", "type 1", "1\n2\n3\n4", "what?"],
])
def test_flow_is_set_once_and_never_changes(inputs):
    session = fresh()
    seen = None
    for text in inputs:
        t = advance(session, text, LINKS)
        if session.flow is not Flow.NONE:
            assert t.session.flow is session.flow
        seen = seen or (t.session.flow if t.session.flow is not Flow.NONE else None)
        session = t.session
    assert session.flow is seen


# ---------- Patient ----------
def test_patient_happy_path_non_type1():
    s = fresh()
    t = advance(s, "1", LINKS)
    t = advance(t.session, PATIENT_LINES, LINKS)
    assert t.session.step is Step.P_CONFIRM
    echo = t.replies[0]
    for value in ["Jane Doe", "34", "jane@x.com", "Metformin", "9876543210"]:
        assert value in echo
    assert "(Yes/No)" in echo

    t = advance(t.session, "yes", LINKS)
    assert t.replies == [M.ASK_DIABETES_TYPE]
    t = advance(t.session, "Type 2", LINKS)
    assert t.replies == ["Since how many years?"]
    t = advance(t.session, "5", LINKS)
    assert t.replies == [M.ASK_SUGAR_VALUES]
    t = advance(t.session, "120/160", LINKS)
    assert t.replies == [M.ASK_PATIENT_GOAL]
    t = advance(t.session, "B", LINKS)

    assert t.completed
    assert LINKS.patient in t.replies[0]
    assert LINKS.diabetes_webinar in t.replies[0]
    done = t.effects[-1]
    assert isinstance(done, CompleteFlow)
    assert done.flow is Flow.PATIENT
    assert done.fields["diabetes_type"] == "Type 2"
    assert done.fields["diabetes_years"] == "5"
    assert done.fields["latest_fasting_pp"] == "120/160"
    assert done.fields["main_goal"] == "B"


def test_patient_collect_reprompts_on_short_input():
    s = advance(fresh(), "1", LINKS).session
    t = advance(s, "Jane\n34", LINKS)
    assert t.session == s
    assert t.replies == [M.PATIENT_DETAILS_REPROMPT]


def test_patient_confirm_no_loops_back_and_ambiguous_reprompts():
    s = advance(advance(fresh(), "1", LINKS).session, PATIENT_LINES, LINKS).session
    t = advance(s, "perhaps", LINKS)
    assert t.session.step is Step.P_CONFIRM
    assert t.replies == [M.YES_NO_REPROMPT]
    t = advance(s, "No", LINKS)
    assert t.session.step is Step.P_COLLECT
    assert t.replies == [M.PATIENT_RESEND]


def test_fields_are_kept_exactly_as_typed():
    s = advance(fresh(), "1", LINKS).session
    t = advance(s, "  jANE doe \nThirty four\nJANE@X.COM\n-\n+91 98765-43210", LINKS)
    assert t.session.fields["name"] == "jANE doe"
    assert t.session.fields["age"] == "Thirty four"
    assert t.session.fields["contact_number"] == "+91 98765-43210"


def test_type1_intro_auto_advances_to_answers():
    s = run(fresh(), "1", PATIENT_LINES, "yes")[0].session
    t = advance(s, "Type 1", LINKS)
    assert t.session.step is Step.T1_ANSWERS
    assert t.replies == [M.TYPE1_INTRO]
    assert not t.completed


def test_type1_decline_completes_without_booking_message():
    s = run(fresh(), "1", PATIENT_LINES, "yes", "Type 1")[0].session
    t = advance(s, "3 years\n110/180", LINKS)
    assert t.session.step is Step.T1_ANSWERS
    assert t.replies == [M.TYPE1_DETAILS_REPROMPT]

    t = advance(s, "3 years\n110/180\nyes often\nfatigue", LINKS)
    assert t.session.step is Step.T1_STEP
    assert t.replies == [M.TYPE1_APPROACH]
    assert t.session.fields["type1_symptoms"] == "fatigue"

    unclear = advance(t.session, "tell me more", LINKS)
    assert unclear.replies == [M.TYPE1_YES_NO_REPROMPT]
    assert unclear.session.step is Step.T1_STEP

    declined = advance(t.session, "no", LINKS)
    assert declined.completed
    assert declined.replies == []
    assert LINKS.type1 not in "".join(declined.replies)


def test_type1_accept_sends_booking_link_then_completes():
    t, replies = run(fresh(), "1", PATIENT_LINES, "yes", "type1", "a\nb\nc\nd", "yes", "E")
    assert t.completed
    assert M.ASK_TYPE1_FOCUS in replies
    assert LINKS.type1 in t.replies[0]
    assert t.effects[-1].fields["main_goal"] == "E"


# ---------- Other concern ----------
def test_other_flow_completes_without_confirmation():
    s = advance(fresh(), "2", LINKS).session
    short = advance(s, "a\nb\nc", LINKS)
    assert short.replies == [M.OTHER_DETAILS_REPROMPT]
    assert not short.completed

    t = advance(s, "Raj\n40\nraj@x.com\nnone\n9123456789\nThyroid\n2 years", LINKS)
    assert t.completed
    assert LINKS.other in t.replies[0]
    fields = t.effects[-1].fields
    assert fields["other_concern"] == "Thyroid"
    assert fields["other_since"] == "2 years"


# ---------- Student ----------
STUDENT_LINES = "Asha\n27\nasha@x.com\n9000000001"


def test_student_happy_path():
    t, replies = run(fresh(), "3", STUDENT_LINES, "yes", "B", "D", "yes")
    assert t.completed
    assert M.ASK_BEST_DESCRIBES in replies
    assert M.ASK_TRAINING_GOAL in replies
    assert M.ASK_WEBINAR in replies
    assert LINKS.webinar in t.replies[0]
    fields = t.effects[-1].fields
    assert fields["best_describes"] == "B"
    assert fields["training_goal"] == "D"
    assert fields["webinar_interest"] == "Yes"


def test_student_confirm_no_loops_to_collect():
    s = run(fresh(), "3", STUDENT_LINES)[0].session
    t = advance(s, "n", LINKS)
    assert t.session.step is Step.S_COLLECT
    assert t.replies == [M.STUDENT_RESEND]


@pytest.mark.parametrize("answer", ["no", "maybe", "later"])
def test_student_webinar_requires_explicit_yes(answer):
    s = run(fresh(), "3", STUDENT_LINES, "yes", "A", "B")[0].session
    assert s.step is Step.S_WEBINAR
    t = advance(s, answer, LINKS)
    assert not t.completed
    assert t.session.step is Step.S_WEBINAR
    assert t.replies == [M.WEBINAR_REPROMPT]


def test_completion_snapshot_is_independent_of_session():
    t = run(fresh(), "3", STUDENT_LINES, "yes", "A", "B", "yes")[0]
    snapshot = t.effects[-1].fields
    assert snapshot is not t.session.fields
    snapshot["name"] = "changed"
    assert t.session.fields["name"] == "Asha"
