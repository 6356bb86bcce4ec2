"""Service for Students module."""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import (
    ConcurrencyConflictError,
    DuplicateError,
    NotFoundError,
    RuleViolation,
    ValidationError,
)
from src.modules.colleges.models import College, Course
from src.modules.payments.models import PaymentTransaction
from src.modules.students.models import (
    AcademicRecord,
    CourseYear,
    EmiDetail,
    Student,
    StudentStatus,
)
from src.modules.students.progression import (
    AcademicSnapshot,
    ProgressionOption,
    TransitionKind,
    current_record,
    plan_transition,
    progression_options,
    validate_session_label,
    session_start,
)
from src.modules.students.schemas import (
    DiscontinueRequest,
    FeePlanFields,
    PromoteRequest,
    StudentCreate,
    StudentUpdate,
)
from src.shared.utils.money import round_money

logger = logging.getLogger(__name__)


@dataclass
class PromotionResult:
    kind: TransitionKind
    student: Student
    record: AcademicRecord
    previous_academic_id: int
    lateral_cleared: bool


def academic_snapshots(
    student: Student, paid_record_ids: set[int] | None = None
) -> list[AcademicSnapshot]:
    """Rule-engine view of the student's loaded academic records."""
    paid_record_ids = paid_record_ids or set()
    return [
        AcademicSnapshot(
            id=record.id,
            course_year=CourseYear(record.course_year),
            session_year=record.session_year,
            is_active=record.is_active,
            has_payments=record.id in paid_record_ids,
        )
        for record in student.academic_records
    ]


def _fee_plan_values(data: FeePlanFields) -> dict:
    return {
        "admin_amount": round_money(data.admin_amount),
        "fees_amount": round_money(data.fees_amount),
        "payment_mode": data.payment_mode.value,
        "number_of_emi": data.number_of_emi,
        "ledger_number": data.ledger_number,
    }


def _emi_rows(data: FeePlanFields) -> list[EmiDetail]:
    return [
        EmiDetail(
            emi_number=emi.emi_number,
            amount=round_money(emi.amount),
            due_date=emi.due_date,
        )
        for emi in data.emi_details
    ]


class StudentService:
    """Service for managing students and their academic records."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Student Methods ---

    async def create_student(
        self, data: StudentCreate, created_by_id: int, today: date | None = None
    ) -> Student:
        """Admit a student together with the first academic record."""
        existing = await self.db.execute(
            select(Student.id).where(Student.roll_number == data.roll_number)
        )
        if existing.scalar_one_or_none():
            raise DuplicateError("Student", "roll_number", data.roll_number)

        if data.email:
            existing = await self.db.execute(
                select(Student.id).where(Student.email == data.email)
            )
            if existing.scalar_one_or_none():
                raise DuplicateError("Student", "email", data.email)

        course = await self._check_references(data.college_id, data.course_id)
        if data.is_lateral and course is not None and course.duration_years < 2:
            raise ValidationError(
                f"{course.name} has no 2nd year for a lateral entry", field="course_id"
            )

        today = today or date.today()
        try:
            validate_session_label(data.session_year, today)
        except RuleViolation as exc:
            raise ValidationError(exc.message, field="session_year") from exc
        if session_start(data.session_year) > today.year:
            raise ValidationError(
                f"Cannot admit into future session {data.session_year}", field="session_year"
            )

        # Lateral entry joins directly in 2nd year
        course_year = CourseYear.SECOND if data.is_lateral else CourseYear.FIRST

        student = Student(
            roll_number=data.roll_number,
            first_name=data.first_name,
            last_name=data.last_name,
            date_of_birth=data.date_of_birth,
            gender=data.gender.value,
            mobile_number=data.mobile_number,
            email=data.email,
            father_name=data.father_name,
            category=data.category,
            admission_mode=data.admission_mode,
            admission_date=data.admission_date,
            is_lateral=data.is_lateral,
            college_id=data.college_id,
            course_id=data.course_id,
            status=StudentStatus.ACTIVE.value,
            notes=data.notes,
            created_by_id=created_by_id,
        )
        record = AcademicRecord(
            course_year=course_year.value,
            session_year=data.session_year,
            is_active=True,
            created_by_id=created_by_id,
            emi_details=_emi_rows(data),
            **_fee_plan_values(data),
        )
        student.academic_records.append(record)
        self.db.add(student)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.ADMIT_STUDENT,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student.roll_number,
            user_id=created_by_id,
            new_values={
                "roll_number": data.roll_number,
                "name": student.full_name,
                "is_lateral": data.is_lateral,
                "course_year": course_year.value,
                "session_year": data.session_year,
                "payment_mode": data.payment_mode.value,
            },
        )

        await self.db.commit()
        logger.info(
            "Admitted student %s into %s year, session %s",
            student.roll_number,
            course_year,
            data.session_year,
        )
        return await self.get_student_by_id(student.id)

    async def get_student_by_id(self, student_id: int) -> Student:
        """Get student by ID with academic records (and their EMIs) loaded."""
        result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .options(
                selectinload(Student.academic_records).selectinload(AcademicRecord.emi_details),
                selectinload(Student.college),
                selectinload(Student.course),
            )
            .execution_options(populate_existing=True)
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def list_students(
        self,
        status: StudentStatus | None = None,
        is_lateral: bool | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Student], int]:
        """List students with optional filters."""
        query = (
            select(Student)
            .options(
                selectinload(Student.academic_records),
                selectinload(Student.college),
                selectinload(Student.course),
            )
            .order_by(Student.first_name, Student.last_name, Student.id)
        )

        if status is not None:
            query = query.where(Student.status == status.value)
        if is_lateral is not None:
            query = query.where(Student.is_lateral == is_lateral)
        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    Student.first_name.ilike(search_term),
                    Student.last_name.ilike(search_term),
                    Student.roll_number.ilike(search_term),
                    Student.mobile_number.ilike(search_term),
                    Student.email.ilike(search_term),
                    Student.father_name.ilike(search_term),
                )
            )

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        # Apply pagination
        offset = (page - 1) * limit
        query = query.offset(offset).limit(limit)

        result = await self.db.execute(query)
        students = list(result.scalars().all())

        return students, total

    async def update_student(
        self, student_id: int, data: StudentUpdate, updated_by_id: int
    ) -> Student:
        """Update personal and admission fields of a student."""
        student = await self.get_student_by_id(student_id)
        old_values = {}
        new_values = {}

        if data.email is not None and data.email != student.email:
            existing = await self.db.execute(
                select(Student.id).where(Student.email == data.email, Student.id != student_id)
            )
            if existing.scalar_one_or_none():
                raise DuplicateError("Student", "email", data.email)

        await self._check_references(data.college_id, data.course_id)

        for field_name in (
            "first_name",
            "last_name",
            "mobile_number",
            "email",
            "father_name",
            "category",
            "admission_mode",
            "college_id",
            "course_id",
            "notes",
        ):
            value = getattr(data, field_name)
            if value is not None and value != getattr(student, field_name):
                old_values[field_name] = getattr(student, field_name)
                setattr(student, field_name, value)
                new_values[field_name] = value

        if data.gender is not None and data.gender.value != student.gender:
            old_values["gender"] = student.gender
            student.gender = data.gender.value
            new_values["gender"] = data.gender.value

        for field_name in ("date_of_birth", "admission_date"):
            value = getattr(data, field_name)
            if value is not None and value != getattr(student, field_name):
                current = getattr(student, field_name)
                old_values[field_name] = str(current) if current else None
                setattr(student, field_name, value)
                new_values[field_name] = str(value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Student",
                entity_id=student_id,
                entity_identifier=student.roll_number,
                user_id=updated_by_id,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        return await self.get_student_by_id(student_id)

    async def activate_student(self, student_id: int, activated_by_id: int) -> Student:
        """Activate a student."""
        return await self._set_status(student_id, StudentStatus.ACTIVE, activated_by_id)

    async def deactivate_student(
        self, student_id: int, deactivated_by_id: int
    ) -> Student:
        """Deactivate a student. Records and payments are kept."""
        return await self._set_status(student_id, StudentStatus.INACTIVE, deactivated_by_id)

    async def _set_status(
        self, student_id: int, new_status: StudentStatus, user_id: int
    ) -> Student:
        student = await self.get_student_by_id(student_id)

        if student.status == new_status.value:
            raise ValidationError(f"Student is already {new_status.value}")

        old_values = {"status": student.status}
        student.status = new_status.value

        # Reinstatement wipes the discontinue details
        if new_status == StudentStatus.ACTIVE and student.discontinued_on is not None:
            old_values["discontinued_on"] = str(student.discontinued_on)
            old_values["discontinued_by"] = student.discontinued_by
            student.discontinued_on = None
            student.discontinued_by = None
            student.discontinue_reason = None

        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="Student",
            entity_id=student_id,
            entity_identifier=student.roll_number,
            user_id=user_id,
            old_values=old_values,
            new_values={"status": new_status.value},
        )

        await self.db.commit()
        return await self.get_student_by_id(student_id)

    async def discontinue_student(
        self,
        student_id: int,
        data: DiscontinueRequest,
        discontinued_by_id: int,
        discontinued_by_name: str,
        today: date | None = None,
    ) -> Student:
        """
        Record that a student left the course.

        Academic records and payments are kept as they are. A discontinued
        student cannot be promoted or demoted until activated again.
        """
        student = await self.get_student_by_id(student_id)
        if student.status == StudentStatus.DISCONTINUED.value:
            raise ValidationError("Student is already discontinued")

        today = today or date.today()
        discontinued_on = data.discontinued_on or today
        if discontinued_on > today:
            raise ValidationError(
                "Discontinue date cannot be in the future", field="discontinued_on"
            )
        if student.admission_date and discontinued_on < student.admission_date:
            raise ValidationError(
                f"Discontinue date is before the admission date ({student.admission_date})",
                field="discontinued_on",
            )

        old_status = student.status
        student.status = StudentStatus.DISCONTINUED.value
        student.discontinued_on = discontinued_on
        student.discontinued_by = discontinued_by_name
        student.discontinue_reason = data.reason

        await self.audit.log(
            action=AuditAction.DISCONTINUE_STUDENT,
            entity_type="Student",
            entity_id=student_id,
            entity_identifier=student.roll_number,
            user_id=discontinued_by_id,
            old_values={"status": old_status},
            new_values={
                "status": StudentStatus.DISCONTINUED.value,
                "discontinued_on": str(discontinued_on),
                "discontinued_by": discontinued_by_name,
                "reason": data.reason,
            },
        )

        await self.db.commit()
        logger.info(
            "Discontinued student %s on %s by %s",
            student.roll_number,
            discontinued_on,
            discontinued_by_name,
        )
        return await self.get_student_by_id(student_id)

    async def _check_references(
        self, college_id: int | None, course_id: int | None
    ) -> Course | None:
        """Reject unknown or retired colleges and courses. Returns the course."""
        if college_id is not None:
            result = await self.db.execute(select(College).where(College.id == college_id))
            college = result.scalar_one_or_none()
            if not college or not college.is_active:
                raise ValidationError(f"Invalid college_id: {college_id}", field="college_id")

        if course_id is None:
            return None
        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()
        if not course or not course.is_active:
            raise ValidationError(f"Invalid course_id: {course_id}", field="course_id")
        return course

    # --- Academic record reads ---

    async def list_academic_records(self, student_id: int) -> list[AcademicRecord]:
        """All academic records of a student, oldest course year first."""
        student = await self.get_student_by_id(student_id)
        return sorted(
            student.academic_records,
            key=lambda r: (CourseYear(r.course_year).rank, session_start(r.session_year)),
        )

    async def get_current_record(self, student_id: int) -> AcademicRecord:
        """The student's current academic record."""
        student = await self.get_student_by_id(student_id)
        current = current_record(academic_snapshots(student))
        if current is None:
            raise NotFoundError(f"Active academic record for student {student_id}")
        return next(r for r in student.academic_records if r.id == current.id)

    async def get_emi_details(self, student_id: int, academic_id: int) -> list[EmiDetail]:
        """EMI installments of one academic record of the student."""
        result = await self.db.execute(
            select(AcademicRecord)
            .where(AcademicRecord.id == academic_id, AcademicRecord.student_id == student_id)
            .options(selectinload(AcademicRecord.emi_details))
        )
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("Academic record", academic_id)
        return list(record.emi_details)

    async def get_progression_options(
        self, student_id: int, today: date | None = None
    ) -> list[ProgressionOption]:
        """Course years the student may move to from the current record."""
        student = await self.get_student_by_id(student_id)
        snapshots = academic_snapshots(student, await self._records_with_payments(student_id))
        return progression_options(
            snapshots,
            is_lateral=student.is_lateral,
            course_years=student.course.duration_years if student.course else None,
            today=today,
        )

    async def _records_with_payments(self, student_id: int) -> set[int]:
        result = await self.db.execute(
            select(PaymentTransaction.academic_record_id)
            .where(PaymentTransaction.student_id == student_id)
            .distinct()
        )
        return set(result.scalars().all())

    # --- Promotion / demotion ---

    async def promote_student(
        self,
        student_id: int,
        data: PromoteRequest,
        promoted_by_id: int,
        today: date | None = None,
    ) -> PromotionResult:
        """
        Move a student to another course year.

        The student row is locked for the duration of the transaction. The
        plan comes from the progression rules; this method only writes it:
        a reused record is reactivated and its fee plan replaced, otherwise
        a new record is created. On demotion the record moved away from is
        deactivated, and a confirmed lateral demotion clears ``is_lateral``.
        """
        result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .options(
                selectinload(Student.academic_records).selectinload(AcademicRecord.emi_details),
                selectinload(Student.course),
            )
            .with_for_update()
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        if student.status == StudentStatus.DISCONTINUED.value:
            raise ValidationError(
                "Discontinued student cannot change course year", field="student_id"
            )

        snapshots = academic_snapshots(student, await self._records_with_payments(student_id))
        plan = plan_transition(
            snapshots,
            data.new_course_year,
            data.new_session_year,
            is_lateral=student.is_lateral,
            current_academic_id=data.current_academic_id,
            is_depromote=data.is_depromote,
            confirm_lateral_change=data.confirm_lateral_change,
            course_years=student.course.duration_years if student.course else None,
            today=today,
        )

        records = {record.id: record for record in student.academic_records}
        source = records[plan.source.id]
        old_values = {
            "academic_id": source.id,
            "course_year": source.course_year,
            "session_year": source.session_year,
            "is_lateral": student.is_lateral,
        }

        if plan.reuse_record_id is not None:
            target = records[plan.reuse_record_id]
            target.session_year = plan.session_year
            target.is_active = True
            for key, value in _fee_plan_values(data).items():
                setattr(target, key, value)
            target.emi_details.clear()
            target.emi_details.extend(_emi_rows(data))
        else:
            target = AcademicRecord(
                course_year=plan.course_year.value,
                session_year=plan.session_year,
                is_active=True,
                created_by_id=promoted_by_id,
                emi_details=_emi_rows(data),
                **_fee_plan_values(data),
            )
            student.academic_records.append(target)

        if plan.is_demotion:
            source.is_active = False
        if plan.clear_lateral:
            student.is_lateral = False

        try:
            await self.db.flush()
        except (IntegrityError, StaleDataError) as exc:
            await self.db.rollback()
            logger.warning("Concurrent change while moving student %s: %s", student_id, exc)
            raise ConcurrencyConflictError() from exc

        await self.audit.log(
            action=(
                AuditAction.DEMOTE_STUDENT if plan.is_demotion else AuditAction.PROMOTE_STUDENT
            ),
            entity_type="AcademicRecord",
            entity_id=target.id,
            entity_identifier=student.roll_number,
            user_id=promoted_by_id,
            old_values=old_values,
            new_values={
                "academic_id": target.id,
                "course_year": plan.course_year.value,
                "session_year": plan.session_year,
                "reused_record": plan.reuse_record_id is not None,
                "is_lateral": student.is_lateral,
            },
        )

        await self.db.commit()
        logger.info(
            "%s student %s from %s (%s) to %s (%s)",
            "Demoted" if plan.is_demotion else "Promoted",
            student.roll_number,
            source.course_year,
            plan.source.session_year,
            plan.course_year,
            plan.session_year,
        )

        student = await self.get_student_by_id(student_id)
        record = next(r for r in student.academic_records if r.id == target.id)
        return PromotionResult(
            kind=plan.kind,
            student=student,
            record=record,
            previous_academic_id=plan.source.id,
            lateral_cleared=plan.clear_lateral,
        )
