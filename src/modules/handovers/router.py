"""API endpoints for cash handovers."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.modules.handovers.models import CashHandover
from src.modules.handovers.schemas import (
    HandoverBatchResponse,
    HandoverCreate,
    HandoverResponse,
    HandoverVerify,
)
from src.modules.handovers.service import HandoverService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/payment-handovers", tags=["Handovers"])


def _handover_to_response(handover: CashHandover) -> HandoverResponse:
    response = HandoverResponse.model_validate(handover)
    if handover.student:
        response.student_name = handover.student.full_name
        response.roll_number = handover.student.roll_number
    return response


@router.post(
    "",
    response_model=ApiResponse[HandoverBatchResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_handovers(
    data: HandoverCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.USER)
    ),
):
    """
    Hand over a batch of payments.

    Cheque and bank payments go in full; cash and UPI may be split. The whole
    batch shares one receipt number.
    """
    service = HandoverService(db)
    receipt_number, handovers = await service.create_handovers(
        data, current_user.id, current_user.full_name
    )
    items = [_handover_to_response(h) for h in handovers]
    return ApiResponse(
        message="Payments handed over successfully",
        data=HandoverBatchResponse(
            receipt_number=receipt_number,
            total_amount=sum((h.amount for h in items), 0),
            handovers=items,
        ),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[HandoverResponse]],
)
async def list_handovers(
    received_by: str | None = Query(None),
    handed_over_to: str | None = Query(None),
    student_id: int | None = Query(None),
    payment_id: int | None = Query(None),
    receipt_number: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.ACCOUNTANT, UserRole.USER)
    ),
):
    """List handovers, newest first."""
    service = HandoverService(db)
    handovers, total = await service.list_handovers(
        received_by=received_by,
        handed_over_to=handed_over_to,
        student_id=student_id,
        payment_id=payment_id,
        receipt_number=receipt_number,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_handover_to_response(h) for h in handovers],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.put(
    "/{handover_id}/verify",
    response_model=ApiResponse[HandoverResponse],
)
async def verify_handover(
    handover_id: int,
    data: HandoverVerify | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(
        require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.ACCOUNTANT)
    ),
):
    """Mark a handover as verified."""
    service = HandoverService(db)
    verified_by = (data.verified_by if data else None) or current_user.full_name
    handover = await service.verify_handover(handover_id, verified_by, current_user.id)
    return ApiResponse(
        message="Handover verified",
        data=_handover_to_response(handover),
    )
