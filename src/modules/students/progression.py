"""
Academic-year progression rules.

Pure functions over a snapshot of a student's academic history. Nothing in
here touches the database: ``StudentService`` builds ``AcademicSnapshot``
objects, asks ``plan_transition`` for a ``TransitionPlan`` and applies it.
Every rejection is raised as a ``RuleViolation`` subclass carrying the
reason shown to the operator.
"""

import re
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from src.core.config import settings
from src.core.exceptions import (
    DuplicateRecordError,
    LateralConfirmationRequiredError,
    PaymentHistoryConflictError,
    SequencingError,
    SessionOrderingError,
)
from src.modules.students.models import COURSE_YEAR_ORDER, CourseYear

SESSION_YEAR_REGEX = re.compile(r"^(\d{4})-(\d{4})$")


class TransitionKind(StrEnum):
    PROMOTION = "promotion"
    DEMOTION = "demotion"


@dataclass(frozen=True)
class AcademicSnapshot:
    """What the rules need to know about one academic record."""

    id: int
    course_year: CourseYear
    session_year: str
    is_active: bool = True
    has_payments: bool = False


@dataclass(frozen=True)
class CourseYearDecision:
    kind: TransitionKind
    target_course_year: CourseYear
    # Existing record for the target year to update instead of inserting
    reuse_record_id: int | None = None
    requires_lateral_confirmation: bool = False


@dataclass(frozen=True)
class TransitionPlan:
    """Accepted promotion or demotion, ready to be written."""

    kind: TransitionKind
    source: AcademicSnapshot
    course_year: CourseYear
    session_year: str
    reuse_record_id: int | None
    clear_lateral: bool

    @property
    def is_demotion(self) -> bool:
        return self.kind == TransitionKind.DEMOTION


@dataclass(frozen=True)
class ProgressionOption:
    course_year: CourseYear
    kind: TransitionKind
    default_session_year: str | None
    requires_lateral_confirmation: bool


# --- Session years ---


def session_start(label: str) -> int:
    """Start year of a "YYYY-YYYY+1" label."""
    match = SESSION_YEAR_REGEX.match(label or "")
    if not match or int(match.group(2)) != int(match.group(1)) + 1:
        raise SessionOrderingError(f"Invalid session year: {label}")
    return int(match.group(1))


def session_label(start_year: int) -> str:
    return f"{start_year}-{start_year + 1}"


def session_year_window(today: date | None = None) -> list[str]:
    """Session labels that may be assigned, oldest first."""
    year = (today or date.today()).year
    return [
        session_label(start)
        for start in range(
            year - settings.session_window_past, year + settings.session_window_future + 1
        )
    ]


def validate_session_label(label: str, today: date | None = None) -> str:
    """Check format and window membership of a session label."""
    session_start(label)
    if label not in session_year_window(today):
        raise SessionOrderingError(f"Invalid session year: {label}")
    return label


# --- Record lookups ---


def _sort_key(record: AcademicSnapshot) -> tuple[int, int]:
    return record.course_year.rank, session_start(record.session_year)


def current_record(records: list[AcademicSnapshot]) -> AcademicSnapshot | None:
    """Active record with the highest course year, latest session on ties."""
    active = [r for r in records if r.is_active]
    if not active:
        return None
    return max(active, key=_sort_key)


def _find(
    records: list[AcademicSnapshot], course_year: CourseYear | None, active_only: bool = True
) -> AcademicSnapshot | None:
    if course_year is None:
        return None
    for record in records:
        if record.course_year == course_year and (record.is_active or not active_only):
            return record
    return None


# --- Course-year sequencing ---


def transition_kind(current: CourseYear, new: CourseYear) -> TransitionKind:
    if new == current:
        raise SequencingError(f"Student is already enrolled in {new} year")
    if new.rank > current.rank:
        return TransitionKind.PROMOTION
    return TransitionKind.DEMOTION


def check_course_year_transition(
    current: AcademicSnapshot,
    new_course_year: CourseYear,
    records: list[AcademicSnapshot],
    *,
    is_lateral: bool,
    course_years: int | None = None,
) -> CourseYearDecision:
    """
    Validate a course-year change against the ordered sequence.

    ``course_years`` is the length of the student's course, when known.
    """
    kind = transition_kind(current.course_year, new_course_year)
    direction = new_course_year.rank - current.course_year.rank

    if kind == TransitionKind.PROMOTION:
        if direction > 1:
            skipped = COURSE_YEAR_ORDER[current.course_year.rank + 1 : new_course_year.rank]
            raise SequencingError(
                f"Cannot skip {', '.join(skipped)} year(s). "
                "Students must be promoted sequentially."
            )
        if course_years is not None and new_course_year.rank >= course_years:
            raise SequencingError(
                f"Course runs for {course_years} year(s), cannot promote to {new_course_year} year"
            )
        if _find(records, new_course_year) is not None:
            raise SequencingError(f"Student is already enrolled in {new_course_year} year")

        dormant = _find(records, new_course_year, active_only=False)
        # Payments stay bound to the enrolment they were taken for
        if dormant is not None and dormant.has_payments:
            raise PaymentHistoryConflictError(new_course_year.value, action="promote")
        return CourseYearDecision(
            kind=kind,
            target_course_year=new_course_year,
            reuse_record_id=dormant.id if dormant else None,
        )

    if not (current.course_year == CourseYear.SECOND and new_course_year == CourseYear.FIRST):
        raise SequencingError(
            f"Cannot demote from {current.course_year} to {new_course_year} year. "
            "Cannot demote more than one step, and only from 2nd to 1st."
        )

    existing = _find(records, CourseYear.FIRST, active_only=False)
    if existing is not None and existing.has_payments:
        raise PaymentHistoryConflictError(CourseYear.FIRST.value)

    return CourseYearDecision(
        kind=kind,
        target_course_year=new_course_year,
        reuse_record_id=existing.id if existing else None,
        requires_lateral_confirmation=is_lateral,
    )


# --- Session ordering ---


def check_session_year(
    current: AcademicSnapshot,
    target_course_year: CourseYear,
    new_session_year: str | None,
    records: list[AcademicSnapshot],
    *,
    kind: TransitionKind,
    today: date | None = None,
) -> str:
    """Validate the session label for the new record and return it."""
    if kind == TransitionKind.DEMOTION:
        if new_session_year not in (None, "", current.session_year):
            raise SessionOrderingError(
                "For demotion, the session year must remain the same as the current "
                f"session ({current.session_year})"
            )
        return current.session_year

    if not new_session_year:
        raise SessionOrderingError("New session year is required")

    today = today or date.today()
    validate_session_label(new_session_year, today)
    new_start = session_start(new_session_year)
    current_start = session_start(current.session_year)

    if new_start <= current_start:
        raise SessionOrderingError(
            f"Session year {new_session_year} is earlier than or the same as the current "
            f"session year ({current.session_year})"
        )

    if new_start - current_start > 1:
        skipped = [session_label(s) for s in range(current_start + 1, new_start)]
        raise SessionOrderingError(
            f"Cannot skip {', '.join(skipped)} session(s). "
            f"Next valid session year is {session_label(current_start + 1)}"
        )

    if new_start > today.year:
        raise SessionOrderingError(
            f"Cannot use a future session year beyond {session_label(today.year)}"
        )

    before = _find(records, target_course_year.shifted(-1))
    if before is not None and new_start <= session_start(before.session_year):
        raise SessionOrderingError(
            f"Session year {new_session_year} must be after the {before.course_year} year "
            f"session ({before.session_year})"
        )

    after = _find(records, target_course_year.shifted(1))
    if after is not None and new_start >= session_start(after.session_year):
        raise SessionOrderingError(
            f"Session year {new_session_year} must be before the {after.course_year} year "
            f"session ({after.session_year})"
        )

    for record in records:
        if (
            record.is_active
            and record.course_year == target_course_year
            and record.session_year == new_session_year
        ):
            raise DuplicateRecordError(target_course_year.value, new_session_year)

    return new_session_year


# --- Lateral-entry demotion confirmation ---


class ConfirmationState(StrEnum):
    INIT = "init"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    PROCEED_TO_SUBMIT = "proceed_to_submit"


class LateralDemotionConfirmation:
    """
    Gate in front of demoting a lateral-entry student from 2nd to 1st year.

    The operator must explicitly confirm that the lateral-entry flag is to be
    cleared. Any change of the course-year selection resets the gate.
    """

    def __init__(self, is_lateral: bool, current_course_year: CourseYear):
        self.is_lateral = is_lateral
        self.current_course_year = current_course_year
        self.selected: CourseYear | None = None
        self.state = ConfirmationState.INIT

    @property
    def confirmed(self) -> bool:
        return self.state in (ConfirmationState.CONFIRMED, ConfirmationState.PROCEED_TO_SUBMIT)

    @property
    def requires_confirmation(self) -> bool:
        return (
            self.is_lateral
            and self.current_course_year == CourseYear.SECOND
            and self.selected == CourseYear.FIRST
        )

    @property
    def can_proceed(self) -> bool:
        return not self.requires_confirmation or self.confirmed

    @property
    def clears_lateral(self) -> bool:
        return self.requires_confirmation and self.state == ConfirmationState.PROCEED_TO_SUBMIT

    def select_course_year(self, course_year: CourseYear | None) -> ConfirmationState:
        self.selected = course_year
        self.state = (
            ConfirmationState.AWAITING_CONFIRMATION
            if self.requires_confirmation
            else ConfirmationState.INIT
        )
        return self.state

    def set_confirmed(self, checked: bool) -> ConfirmationState:
        if self.state == ConfirmationState.INIT:
            return self.state
        self.state = (
            ConfirmationState.CONFIRMED if checked else ConfirmationState.AWAITING_CONFIRMATION
        )
        return self.state

    def proceed(self) -> bool:
        """Move to submit. Returns False while confirmation is outstanding."""
        if not self.can_proceed:
            return False
        if self.requires_confirmation:
            self.state = ConfirmationState.PROCEED_TO_SUBMIT
        return True

    def reset(self) -> None:
        self.selected = None
        self.state = ConfirmationState.INIT


# --- Entry points ---


def plan_transition(
    records: list[AcademicSnapshot],
    new_course_year: CourseYear,
    new_session_year: str | None,
    *,
    is_lateral: bool,
    current_academic_id: int | None = None,
    is_depromote: bool | None = None,
    confirm_lateral_change: bool = False,
    course_years: int | None = None,
    today: date | None = None,
) -> TransitionPlan:
    """Run the sequencer, session validator and lateral gate in order."""
    current = current_record(records)
    if current is None:
        raise SequencingError("Student has no active academic record")
    if current_academic_id is not None and current_academic_id != current.id:
        raise SequencingError(
            f"Academic record {current_academic_id} is not the student's current record"
        )

    kind = transition_kind(current.course_year, new_course_year)
    if is_depromote is not None and is_depromote != (kind == TransitionKind.DEMOTION):
        raise SequencingError(
            f"Moving from {current.course_year} to {new_course_year} year is a {kind}, "
            "not what the request declared"
        )

    if kind == TransitionKind.DEMOTION:
        session_year = check_session_year(
            current, new_course_year, new_session_year, records, kind=kind, today=today
        )

    decision = check_course_year_transition(
        current, new_course_year, records, is_lateral=is_lateral, course_years=course_years
    )

    if kind == TransitionKind.PROMOTION:
        session_year = check_session_year(
            current, new_course_year, new_session_year, records, kind=kind, today=today
        )

    gate = LateralDemotionConfirmation(is_lateral, current.course_year)
    gate.select_course_year(new_course_year)
    gate.set_confirmed(confirm_lateral_change)
    if not gate.proceed():
        raise LateralConfirmationRequiredError()

    return TransitionPlan(
        kind=kind,
        source=current,
        course_year=new_course_year,
        session_year=session_year,
        reuse_record_id=decision.reuse_record_id,
        clear_lateral=gate.clears_lateral,
    )


def progression_options(
    records: list[AcademicSnapshot],
    *,
    is_lateral: bool,
    course_years: int | None = None,
    today: date | None = None,
) -> list[ProgressionOption]:
    """
    Course years a selector may offer for the student's current record.

    A promotion is suggested the session after the current one, or no
    session at all when that one has not started yet.
    """
    current = current_record(records)
    this_year = (today or date.today()).year
    if current is None:
        return []

    options: list[ProgressionOption] = []
    for course_year in COURSE_YEAR_ORDER:
        if course_year == current.course_year:
            continue
        try:
            decision = check_course_year_transition(
                current, course_year, records, is_lateral=is_lateral, course_years=course_years
            )
        except (SequencingError, PaymentHistoryConflictError):
            continue

        if decision.kind == TransitionKind.DEMOTION:
            default_session = current.session_year
        else:
            next_start = session_start(current.session_year) + 1
            default_session = session_label(next_start) if next_start <= this_year else None

        options.append(
            ProgressionOption(
                course_year=course_year,
                kind=decision.kind,
                default_session_year=default_session,
                requires_lateral_confirmation=decision.requires_lateral_confirmation,
            )
        )
    return options
