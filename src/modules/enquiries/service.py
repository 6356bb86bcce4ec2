"""Service for course enquiries."""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import DuplicateError, NotFoundError
from src.modules.enquiries.models import CourseEnquiry
from src.modules.enquiries.schemas import EnquiryCreate, EnquiryStatusUpdate

logger = logging.getLogger(__name__)


class EnquiryService:
    """Service for registering and following up course enquiries."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def create_enquiry(self, data: EnquiryCreate) -> CourseEnquiry:
        """Register an enquiry. One enquiry per email and per mobile number."""
        result = await self.db.execute(
            select(CourseEnquiry).where(
                or_(
                    CourseEnquiry.email == data.email,
                    CourseEnquiry.mobile_number == data.mobile_number,
                )
            )
        )
        existing = result.scalars().first()
        if existing:
            if existing.email == data.email:
                raise DuplicateError("Course enquiry", "email", data.email)
            raise DuplicateError("Course enquiry", "mobile_number", data.mobile_number)

        enquiry = CourseEnquiry(
            full_name=data.full_name,
            mobile_number=data.mobile_number,
            email=data.email,
            course=data.course,
            is_contacted=False,
        )
        self.db.add(enquiry)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="CourseEnquiry",
            entity_id=enquiry.id,
            entity_identifier=data.email,
            new_values={"full_name": data.full_name, "course": data.course},
        )

        await self.db.commit()
        await self.db.refresh(enquiry)
        logger.info("Registered course enquiry %s for %s", enquiry.id, data.course)
        return enquiry

    async def get_enquiry_by_id(self, enquiry_id: int) -> CourseEnquiry:
        """Get enquiry by ID."""
        result = await self.db.execute(
            select(CourseEnquiry).where(CourseEnquiry.id == enquiry_id)
        )
        enquiry = result.scalar_one_or_none()
        if not enquiry:
            raise NotFoundError("Course enquiry", enquiry_id)
        return enquiry

    async def list_enquiries(
        self,
        is_contacted: bool | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[CourseEnquiry], int]:
        """List enquiries, newest first."""
        query = select(CourseEnquiry).order_by(
            CourseEnquiry.created_at.desc(), CourseEnquiry.id.desc()
        )

        if is_contacted is not None:
            query = query.where(CourseEnquiry.is_contacted == is_contacted)
        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    CourseEnquiry.full_name.ilike(search_term),
                    CourseEnquiry.email.ilike(search_term),
                    CourseEnquiry.mobile_number.ilike(search_term),
                    CourseEnquiry.course.ilike(search_term),
                )
            )

        total_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(query.offset((page - 1) * limit).limit(limit))
        return list(result.scalars().all()), total

    async def update_status(
        self,
        enquiry_id: int,
        data: EnquiryStatusUpdate,
        updated_by_id: int,
        updated_by_name: str,
    ) -> CourseEnquiry:
        """Mark an enquiry contacted (or back to pending)."""
        enquiry = await self.get_enquiry_by_id(enquiry_id)
        old_values = {
            "is_contacted": enquiry.is_contacted,
            "contacted_by": enquiry.contacted_by,
        }

        enquiry.is_contacted = data.is_contacted
        if data.is_contacted:
            enquiry.contacted_by = updated_by_name
            enquiry.contacted_at = datetime.now(timezone.utc)
        else:
            enquiry.contacted_by = None
            enquiry.contacted_at = None
        if data.remarks is not None:
            enquiry.remarks = data.remarks

        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="CourseEnquiry",
            entity_id=enquiry.id,
            entity_identifier=enquiry.email,
            user_id=updated_by_id,
            old_values=old_values,
            new_values={
                "is_contacted": data.is_contacted,
                "contacted_by": enquiry.contacted_by,
                "remarks": data.remarks,
            },
        )

        await self.db.commit()
        await self.db.refresh(enquiry)
        return enquiry
