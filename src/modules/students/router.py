"""API endpoints for Students module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.modules.payments.service import PaymentService
from src.modules.students.models import CourseYear, Student, StudentStatus
from src.modules.students.progression import TransitionKind, current_record
from src.modules.students.schemas import (
    AcademicPaymentSummary,
    AcademicRecordResponse,
    DiscontinueRequest,
    EmiDetailResponse,
    ProgressionOptionResponse,
    PromoteRequest,
    PromotionResultResponse,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
)
from src.modules.students.service import StudentService, academic_snapshots
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/students", tags=["Students"])

READ_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.USER, UserRole.ACCOUNTANT)


def _student_to_response(student: Student) -> StudentResponse:
    """Helper to convert Student to response."""
    current = current_record(academic_snapshots(student))

    return StudentResponse(
        id=student.id,
        roll_number=student.roll_number,
        first_name=student.first_name,
        last_name=student.last_name,
        full_name=student.full_name,
        date_of_birth=student.date_of_birth,
        gender=student.gender,
        mobile_number=student.mobile_number,
        email=student.email,
        father_name=student.father_name,
        category=student.category,
        admission_mode=student.admission_mode,
        admission_date=student.admission_date,
        is_lateral=student.is_lateral,
        college_id=student.college_id,
        college_name=student.college.name if student.college else None,
        course_id=student.course_id,
        course_name=student.course.name if student.course else None,
        status=student.status,
        discontinued_on=student.discontinued_on,
        discontinued_by=student.discontinued_by,
        discontinue_reason=student.discontinue_reason,
        notes=student.notes,
        current_course_year=current.course_year.value if current else None,
        current_session_year=current.session_year if current else None,
        created_by_id=student.created_by_id,
    )


@router.post(
    "",
    response_model=ApiResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    data: StudentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    ),
):
    """Admit a student with the first academic record. Requires ADMIN role."""
    service = StudentService(db)
    student = await service.create_student(data, current_user.id)
    return ApiResponse(
        success=True,
        message="Student created successfully",
        data=_student_to_response(student),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[StudentResponse]],
)
async def list_students(
    status: StudentStatus | None = Query(None, description="Filter by status"),
    is_lateral: bool | None = Query(None, description="Filter lateral-entry students"),
    search: str | None = Query(None, description="Search by name, roll number, mobile, email"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """List students with optional filters."""
    service = StudentService(db)
    students, total = await service.list_students(
        status=status,
        is_lateral=is_lateral,
        search=search,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[_student_to_response(s) for s in students],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Get student by ID."""
    service = StudentService(db)
    student = await service.get_student_by_id(student_id)
    return ApiResponse(
        success=True,
        data=_student_to_response(student),
    )


@router.patch(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
)
async def update_student(
    student_id: int,
    data: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    ),
):
    """Update a student. Requires ADMIN role."""
    service = StudentService(db)
    student = await service.update_student(student_id, data, current_user.id)
    return ApiResponse(
        success=True,
        message="Student updated successfully",
        data=_student_to_response(student),
    )


@router.post(
    "/{student_id}/activate",
    response_model=ApiResponse[StudentResponse],
)
async def activate_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    ),
):
    """Activate a student. Requires ADMIN role."""
    service = StudentService(db)
    student = await service.activate_student(student_id, current_user.id)
    return ApiResponse(
        success=True,
        message="Student activated successfully",
        data=_student_to_response(student),
    )


@router.post(
    "/{student_id}/deactivate",
    response_model=ApiResponse[StudentResponse],
)
async def deactivate_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    ),
):
    """Deactivate a student. Requires ADMIN role."""
    service = StudentService(db)
    student = await service.deactivate_student(student_id, current_user.id)
    return ApiResponse(
        success=True,
        message="Student deactivated successfully",
        data=_student_to_response(student),
    )


@router.post(
    "/{student_id}/discontinue",
    response_model=ApiResponse[StudentResponse],
)
async def discontinue_student(
    student_id: int,
    data: DiscontinueRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    ),
):
    """Mark a student as discontinued. Requires ADMIN role."""
    service = StudentService(db)
    student = await service.discontinue_student(
        student_id, data, current_user.id, current_user.full_name
    )
    return ApiResponse(
        success=True,
        message="Student discontinued successfully",
        data=_student_to_response(student),
    )


# --- Academic details ---


@router.get(
    "/{student_id}/academic-details",
    response_model=ApiResponse[list[AcademicRecordResponse]],
)
async def list_academic_details(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """All academic records of the student, including deactivated ones."""
    service = StudentService(db)
    records = await service.list_academic_records(student_id)
    return ApiResponse(data=[AcademicRecordResponse.model_validate(r) for r in records])


@router.get(
    "/{student_id}/academic-details/latest",
    response_model=ApiResponse[AcademicRecordResponse],
)
async def get_latest_academic_details(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """The student's current academic record."""
    service = StudentService(db)
    record = await service.get_current_record(student_id)
    return ApiResponse(data=AcademicRecordResponse.model_validate(record))


@router.get(
    "/{student_id}/academic-details/{academic_id}/emi",
    response_model=ApiResponse[list[EmiDetailResponse]],
)
async def get_emi_details(
    student_id: int,
    academic_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """EMI installments of one academic record."""
    service = StudentService(db)
    emis = await service.get_emi_details(student_id, academic_id)
    return ApiResponse(data=[EmiDetailResponse.model_validate(e) for e in emis])


# --- Progression ---


@router.get(
    "/{student_id}/progression-options",
    response_model=ApiResponse[list[ProgressionOptionResponse]],
)
async def get_progression_options(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Course years a promotion form may offer for this student."""
    service = StudentService(db)
    options = await service.get_progression_options(student_id)
    return ApiResponse(
        data=[
            ProgressionOptionResponse(
                course_year=option.course_year.value,
                kind=option.kind.value,
                default_session_year=option.default_session_year,
                requires_lateral_confirmation=option.requires_lateral_confirmation,
            )
            for option in options
        ]
    )


@router.post(
    "/{student_id}/promote",
    response_model=ApiResponse[PromotionResultResponse],
)
async def promote_student(
    student_id: int,
    data: PromoteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    ),
):
    """
    Promote or demote a student.

    Promotion moves one course year forward into the next session. Demotion
    is only allowed from 2nd to 1st year and keeps the current session; a
    lateral-entry student additionally needs ``confirm_lateral_change``.
    """
    service = StudentService(db)
    result = await service.promote_student(student_id, data, current_user.id)
    target = CourseYear(result.record.course_year)
    return ApiResponse(
        message=(
            f"Student demoted to {target} year"
            if result.kind == TransitionKind.DEMOTION
            else f"Student promoted to {target} year"
        ),
        data=PromotionResultResponse(
            kind=result.kind.value,
            student=_student_to_response(result.student),
            academic_record=AcademicRecordResponse.model_validate(result.record),
            previous_academic_id=result.previous_academic_id,
            lateral_cleared=result.lateral_cleared,
        ),
    )


@router.get(
    "/{student_id}/payment-summary",
    response_model=ApiResponse[list[AcademicPaymentSummary]],
)
async def get_payment_summary(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Planned, paid and pending amounts for each academic record."""
    service = PaymentService(db)
    return ApiResponse(data=await service.get_student_payment_summary(student_id))
