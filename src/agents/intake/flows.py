"""
Intake Dialogue State Machine

Each session sits at one (flow, step) pair. `advance(session, text, links)`
is a pure function returning the next session plus the effects the caller
must run (replies to send, a completed record to persist). Nothing here does
I/O, so every transition can be checked in isolation.

Shared rule: a failed validation or an ambiguous yes/no re-sends the current
step's prompt and leaves the step unchanged.
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Union

from . import messages as M
from .messages import format_message
from .normalizers import Affirmation, is_type1, normalize_token, parse_affirmation, parse_structured_lines

log = logging.getLogger(__name__)


class Flow(str, Enum):
    NONE = "none"
    PATIENT = "patient"
    OTHER = "other"
    STUDENT = "student"


class Step(str, Enum):
    CHOOSE = "choose"
    # patient
    P_COLLECT = "p_collect"
    P_CONFIRM = "p_confirm"
    P_TYPE = "p_type"
    P_YEARS = "p_years"
    P_VALUES = "p_values"
    P_GOAL = "p_goal"
    T1_INTRO = "t1_intro"
    T1_ANSWERS = "t1_answers"
    T1_STEP = "t1_step"
    T1_FOCUS = "t1_focus"
    # other concern
    O_COLLECT = "o_collect"
    # student
    S_COLLECT = "s_collect"
    S_CONFIRM = "s_confirm"
    S_BEST = "s_best"
    S_GOAL = "s_goal"
    S_WEBINAR = "s_webinar"


FLOW_STEPS: dict[Flow, frozenset] = {
    Flow.NONE: frozenset({Step.CHOOSE}),
    Flow.PATIENT: frozenset({
        Step.P_COLLECT, Step.P_CONFIRM, Step.P_TYPE, Step.P_YEARS, Step.P_VALUES, Step.P_GOAL,
        Step.T1_INTRO, Step.T1_ANSWERS, Step.T1_STEP, Step.T1_FOCUS,
    }),
    Flow.OTHER: frozenset({Step.O_COLLECT}),
    Flow.STUDENT: frozenset({Step.S_COLLECT, Step.S_CONFIRM, Step.S_BEST, Step.S_GOAL, Step.S_WEBINAR}),
}

# ---------- Bulk field lists ----------
PATIENT_FIELDS = ["name", "age", "email", "current_medication", "contact_number"]
TYPE1_FIELDS = ["type1_since_diagnosed", "type1_latest_values", "type1_high_low", "type1_symptoms"]
OTHER_FIELDS = ["name", "age", "email", "current_medication", "contact_number", "other_concern", "other_since"]
STUDENT_FIELDS = ["name", "age", "email", "contact_number"]


@dataclass(frozen=True)
class Links:
    patient: str
    diabetes_webinar: str
    type1: str
    other: str
    webinar: str

    @classmethod
    def from_settings(cls, settings) -> "Links":
        return cls(
            patient=settings.PATIENT_LINK,
            diabetes_webinar=settings.DIABETES_WEBINAR_LINK,
            type1=settings.TYPE1_LINK,
            other=settings.other_link,
            webinar=settings.WEBINAR_LINK,
        )


@dataclass(frozen=True)
class Session:
    """One user's position in a dialogue. Updated by replacement, never in place."""
    identifier: str
    phone: str
    flow: Flow = Flow.NONE
    step: Step = Step.CHOOSE
    fields: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.step not in FLOW_STEPS[self.flow]:
            raise ValueError(f"step {self.step.value} does not belong to flow {self.flow.value}")

    def at(self, step: Step) -> "Session":
        return replace(self, step=step)

    def with_fields(self, **updates: str) -> "Session":
        return replace(self, fields={**self.fields, **updates})

    def enter(self, flow: Flow, step: Step) -> "Session":
        if self.flow is not Flow.NONE:
            raise ValueError(f"session {self.identifier} already committed to {self.flow.value}")
        return replace(self, flow=flow, step=step)


def new_session(identifier: str, phone: str) -> Session:
    return Session(identifier=identifier, phone=phone, fields={"contact_number": phone})


# ---------- Effects ----------
@dataclass(frozen=True)
class SendReply:
    text: str


@dataclass(frozen=True)
class CompleteFlow:
    """Persist the record and arm follow-ups; `fields` is a snapshot independent of the session."""
    identifier: str
    phone: str
    flow: Flow
    fields: dict


Effect = Union[SendReply, CompleteFlow]


@dataclass(frozen=True)
class Transition:
    session: Session
    effects: tuple = ()

    @property
    def completed(self) -> bool:
        return any(isinstance(e, CompleteFlow) for e in self.effects)

    @property
    def replies(self) -> list[str]:
        return [e.text for e in self.effects if isinstance(e, SendReply)]


Handler = Callable[[Session, str, Links], tuple[Session, list]]


def _reply(text: str) -> SendReply:
    return SendReply(text)


def _complete(session: Session) -> CompleteFlow:
    return CompleteFlow(
        identifier=session.identifier,
        phone=session.phone,
        flow=session.flow,
        fields=dict(session.fields),
    )


# ---------- Router ----------
def _handle_choose(s: Session, text: str, links: Links):
    t = normalize_token(text)
    if t == "1" or "diabetes" in t:
        return s.enter(Flow.PATIENT, Step.P_COLLECT), [_reply(M.DIABETES_INTRO)]
    if t == "2" or "other" in t:
        return s.enter(Flow.OTHER, Step.O_COLLECT), [_reply(M.OTHER_INTRO)]
    if t == "3" or "professional" in t or "certification" in t:
        return s.enter(Flow.STUDENT, Step.S_COLLECT), [_reply(M.STUDENT_INTRO)]
    return s, [_reply(M.CHOOSE_REPROMPT)]


# ---------- Patient ----------
def _handle_p_collect(s: Session, text: str, links: Links):
    bulk = parse_structured_lines(text, PATIENT_FIELDS)
    if bulk is None:
        return s, [_reply(M.PATIENT_DETAILS_REPROMPT)]
    s = s.with_fields(**bulk).at(Step.P_CONFIRM)
    return s, [_reply(format_message(M.PATIENT_CONFIRM, **s.fields))]


def _handle_p_confirm(s: Session, text: str, links: Links):
    ans = parse_affirmation(text)
    if ans is None:
        return s, [_reply(M.YES_NO_REPROMPT)]
    if ans is Affirmation.NO:
        return s.at(Step.P_COLLECT), [_reply(M.PATIENT_RESEND)]
    return s.at(Step.P_TYPE), [_reply(M.ASK_DIABETES_TYPE)]


def _handle_p_type(s: Session, text: str, links: Links):
    s = s.with_fields(diabetes_type=text)
    if is_type1(text):
        return s.at(Step.T1_INTRO), []
    return s.at(Step.P_YEARS), [_reply(M.ASK_DIABETES_YEARS)]


def _handle_p_years(s: Session, text: str, links: Links):
    return s.with_fields(diabetes_years=text).at(Step.P_VALUES), [_reply(M.ASK_SUGAR_VALUES)]


def _handle_p_values(s: Session, text: str, links: Links):
    return s.with_fields(latest_fasting_pp=text).at(Step.P_GOAL), [_reply(M.ASK_PATIENT_GOAL)]


def _handle_p_goal(s: Session, text: str, links: Links):
    s = s.with_fields(main_goal=text)
    closing = format_message(
        M.PATIENT_CLOSING,
        patient_link=links.patient,
        diabetes_webinar_link=links.diabetes_webinar,
    )
    return s, [_reply(closing), _complete(s)]


def _enter_t1_intro(s: Session, links: Links):
    """Informational step: sends the intro and moves on without waiting for input."""
    return s.at(Step.T1_ANSWERS), [_reply(M.TYPE1_INTRO)]


def _handle_t1_intro(s: Session, text: str, links: Links):
    # Never rests here; if it somehow does, treat the input as the answers.
    return _handle_t1_answers(s.at(Step.T1_ANSWERS), text, links)


def _handle_t1_answers(s: Session, text: str, links: Links):
    bulk = parse_structured_lines(text, TYPE1_FIELDS)
    if bulk is None:
        return s, [_reply(M.TYPE1_DETAILS_REPROMPT)]
    return s.with_fields(**bulk).at(Step.T1_STEP), [_reply(M.TYPE1_APPROACH)]


def _handle_t1_step(s: Session, text: str, links: Links):
    ans = parse_affirmation(text)
    if ans is None:
        return s, [_reply(M.TYPE1_YES_NO_REPROMPT)]
    if ans is Affirmation.NO:
        return s, [_complete(s)]
    return s.at(Step.T1_FOCUS), [_reply(M.ASK_TYPE1_FOCUS)]


def _handle_t1_focus(s: Session, text: str, links: Links):
    s = s.with_fields(main_goal=text)
    return s, [_reply(format_message(M.TYPE1_CLOSING, type1_link=links.type1)), _complete(s)]


# ---------- Other concern ----------
def _handle_o_collect(s: Session, text: str, links: Links):
    # No confirmation step in this flow: the record completes on the first valid reply.
    bulk = parse_structured_lines(text, OTHER_FIELDS)
    if bulk is None:
        return s, [_reply(M.OTHER_DETAILS_REPROMPT)]
    s = s.with_fields(**bulk)
    return s, [_reply(format_message(M.OTHER_CLOSING, other_link=links.other)), _complete(s)]


# ---------- Student ----------
def _handle_s_collect(s: Session, text: str, links: Links):
    bulk = parse_structured_lines(text, STUDENT_FIELDS)
    if bulk is None:
        return s, [_reply(M.STUDENT_DETAILS_REPROMPT)]
    s = s.with_fields(**bulk).at(Step.S_CONFIRM)
    return s, [_reply(format_message(M.STUDENT_CONFIRM, **s.fields))]


def _handle_s_confirm(s: Session, text: str, links: Links):
    ans = parse_affirmation(text)
    if ans is None:
        return s, [_reply(M.YES_NO_REPROMPT)]
    if ans is Affirmation.NO:
        return s.at(Step.S_COLLECT), [_reply(M.STUDENT_RESEND)]
    return s.at(Step.S_BEST), [_reply(M.ASK_BEST_DESCRIBES)]


def _handle_s_best(s: Session, text: str, links: Links):
    return s.with_fields(best_describes=text).at(Step.S_GOAL), [_reply(M.ASK_TRAINING_GOAL)]


def _handle_s_goal(s: Session, text: str, links: Links):
    return s.with_fields(training_goal=text).at(Step.S_WEBINAR), [_reply(M.ASK_WEBINAR)]


def _handle_s_webinar(s: Session, text: str, links: Links):
    # Only an explicit yes completes; "no" re-prompts like an unclear answer.
    if parse_affirmation(text) is not Affirmation.YES:
        return s, [_reply(M.WEBINAR_REPROMPT)]
    s = s.with_fields(webinar_interest="Yes")
    return s, [_reply(format_message(M.STUDENT_CLOSING, webinar_link=links.webinar)), _complete(s)]


STEP_HANDLERS: dict[Step, Handler] = {
    Step.CHOOSE: _handle_choose,
    Step.P_COLLECT: _handle_p_collect,
    Step.P_CONFIRM: _handle_p_confirm,
    Step.P_TYPE: _handle_p_type,
    Step.P_YEARS: _handle_p_years,
    Step.P_VALUES: _handle_p_values,
    Step.P_GOAL: _handle_p_goal,
    Step.T1_INTRO: _handle_t1_intro,
    Step.T1_ANSWERS: _handle_t1_answers,
    Step.T1_STEP: _handle_t1_step,
    Step.T1_FOCUS: _handle_t1_focus,
    Step.O_COLLECT: _handle_o_collect,
    Step.S_COLLECT: _handle_s_collect,
    Step.S_CONFIRM: _handle_s_confirm,
    Step.S_BEST: _handle_s_best,
    Step.S_GOAL: _handle_s_goal,
    Step.S_WEBINAR: _handle_s_webinar,
}

# Steps that run on entry instead of waiting for the next message
AUTO_STEPS: dict[Step, Callable[[Session, Links], tuple[Session, list]]] = {
    Step.T1_INTRO: _enter_t1_intro,
}


def advance(session: Session, text: str, links: Links) -> Transition:
    """
    Feed one user message to the session.

    Args:
        session: Current session (left untouched)
        text: Trimmed message text
        links: Outbound URLs used in closing messages

    Returns:
        Transition with the next session and the ordered effects
    """
    handler = STEP_HANDLERS[session.step]
    nxt, effects = handler(session, text, links)
    while nxt.step in AUTO_STEPS and not any(isinstance(e, CompleteFlow) for e in effects):
        nxt, more = AUTO_STEPS[nxt.step](nxt, links)
        effects = effects + more
    if nxt.step != session.step:
        log.debug(f"[FLOW] {session.identifier}: {session.step.value} → {nxt.step.value}")
    return Transition(session=nxt, effects=tuple(effects))
