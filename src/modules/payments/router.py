"""API endpoints for Payments module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.modules.payments.models import AmountType, PaymentTransaction
from src.modules.payments.schemas import (
    HasHandoverResponse,
    PaymentCreate,
    PaymentDetailResponse,
    PaymentFilters,
    PaymentResponse,
    StaffPaymentResponse,
)
from src.modules.payments.service import PaymentService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/payments", tags=["Payments"])

READ_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.ACCOUNTANT, UserRole.USER)
WRITE_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.USER)


def _payment_to_response(payment: PaymentTransaction) -> PaymentResponse:
    response = PaymentResponse.model_validate(payment)
    if payment.student:
        response.student_name = payment.student.full_name
        response.roll_number = payment.student.roll_number
    return response


@router.post(
    "",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
):
    """Record a payment against an academic record. Accountant is read-only."""
    service = PaymentService(db)
    payment = await service.create_payment(data, current_user.id)
    return ApiResponse(
        data=_payment_to_response(payment),
        message="Payment recorded successfully",
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[PaymentResponse]],
)
async def list_payments(
    student_id: int | None = Query(None),
    academic_record_id: int | None = Query(None),
    amount_type: AmountType | None = Query(None),
    approved_by: str | None = Query(None),
    session_year: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """List payments with optional filters."""
    service = PaymentService(db)
    filters = PaymentFilters(
        student_id=student_id,
        academic_record_id=academic_record_id,
        amount_type=amount_type,
        approved_by=approved_by,
        session_year=session_year,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    payments, total = await service.list_payments(filters)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_payment_to_response(p) for p in payments],
            total=total,
            page=page,
            limit=limit,
        ),
    )


# Static paths are declared before /{payment_id}


@router.get(
    "/approved-by",
    response_model=ApiResponse[list[str]],
)
async def list_approved_by(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Staff members that have taken payments."""
    service = PaymentService(db)
    return ApiResponse(data=await service.list_approved_by())


@router.get(
    "/payments-by-staff/{staff_name}",
    response_model=ApiResponse[list[StaffPaymentResponse]],
)
async def list_payments_by_staff(
    staff_name: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Payments held by a staff member with an amount still to hand over."""
    service = PaymentService(db)
    rows = await service.list_payments_by_staff(staff_name)
    return ApiResponse(data=[StaffPaymentResponse(**row) for row in rows])


@router.get(
    "/details",
    response_model=ApiResponse[list[PaymentDetailResponse]],
)
async def get_payment_details(
    student_id: int | None = Query(None),
    session_year: str | None = Query(None),
    course_year: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Payment totals per student, course year and session year."""
    service = PaymentService(db)
    details = await service.get_payment_details(
        student_id=student_id, session_year=session_year, course_year=course_year
    )
    return ApiResponse(
        data=[
            PaymentDetailResponse(
                student_id=d.student_id,
                student_name=d.student_name,
                roll_number=d.roll_number,
                course_year=d.course_year,
                session_year=d.session_year,
                payment_mode=d.payment_mode,
                admin_amount=d.admin_amount,
                fees_amount=d.fees_amount,
                fine_amount=d.fine_amount,
                refund_amount=d.refund_amount,
                total_paid=d.total_paid,
                net_amount=d.net_amount,
                transaction_ids=d.transaction_ids,
            )
            for d in details
        ]
    )


@router.get(
    "/{payment_id}",
    response_model=ApiResponse[PaymentResponse],
)
async def get_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Get payment by ID."""
    service = PaymentService(db)
    payment = await service.get_payment_by_id(payment_id)
    return ApiResponse(data=_payment_to_response(payment))


@router.get(
    "/{payment_id}/has-handover",
    response_model=ApiResponse[HasHandoverResponse],
)
async def check_has_handover(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """Whether the payment has been (partly) handed over and can no longer be deleted."""
    service = PaymentService(db)
    has_handover = await service.has_handover(payment_id)
    return ApiResponse(
        data=HasHandoverResponse(payment_id=payment_id, has_handover=has_handover)
    )


@router.delete(
    "/{payment_id}",
    response_model=ApiResponse[None],
)
async def delete_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    ),
):
    """Delete a payment. Only allowed while no handover references it."""
    service = PaymentService(db)
    await service.delete_payment(payment_id, current_user.id)
    return ApiResponse(data=None, message="Payment deleted successfully")
