"""API endpoints for course enquiries."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.modules.enquiries.schemas import EnquiryCreate, EnquiryResponse, EnquiryStatusUpdate
from src.modules.enquiries.service import EnquiryService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/enquiries", tags=["Enquiries"])

STAFF_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.USER)


@router.post(
    "",
    response_model=ApiResponse[EnquiryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register_enquiry(
    data: EnquiryCreate,
    db: AsyncSession = Depends(get_db),
):
    """Public registration form. No authentication."""
    service = EnquiryService(db)
    enquiry = await service.create_enquiry(data)
    return ApiResponse(
        success=True,
        message="Registration successful",
        data=EnquiryResponse.model_validate(enquiry),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[EnquiryResponse]],
)
async def list_enquiries(
    is_contacted: bool | None = Query(None, description="Filter by follow-up state"),
    search: str | None = Query(None, description="Search by name, email, mobile, course"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    """List course enquiries, newest first."""
    service = EnquiryService(db)
    enquiries, total = await service.list_enquiries(
        is_contacted=is_contacted, search=search, page=page, limit=limit
    )
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[EnquiryResponse.model_validate(e) for e in enquiries],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.patch(
    "/{enquiry_id}/status",
    response_model=ApiResponse[EnquiryResponse],
)
async def update_enquiry_status(
    enquiry_id: int,
    data: EnquiryStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    """Mark an enquiry contacted."""
    service = EnquiryService(db)
    enquiry = await service.update_status(
        enquiry_id, data, current_user.id, current_user.full_name
    )
    return ApiResponse(
        success=True,
        message="Enquiry status updated successfully",
        data=EnquiryResponse.model_validate(enquiry),
    )
