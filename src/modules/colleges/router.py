"""API endpoints for college and course master data."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.modules.colleges.schemas import (
    CollegeCreate,
    CollegeResponse,
    CollegeUpdate,
    CourseCreate,
    CourseResponse,
    CourseUpdate,
)
from src.modules.colleges.service import CollegeService
from src.shared.schemas.base import ApiResponse

router = APIRouter(tags=["Colleges"])

READ_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.USER, UserRole.ACCOUNTANT)


# --- College Endpoints ---


@router.post(
    "/colleges",
    response_model=ApiResponse[CollegeResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_college(
    data: CollegeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)),
):
    """Create a college. Requires ADMIN role."""
    service = CollegeService(db)
    college = await service.create_college(data, current_user.id)
    return ApiResponse(
        success=True,
        message="College created successfully",
        data=CollegeResponse.model_validate(college),
    )


@router.get(
    "/colleges",
    response_model=ApiResponse[list[CollegeResponse]],
)
async def list_colleges(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """List colleges."""
    service = CollegeService(db)
    colleges = await service.list_colleges(include_inactive=include_inactive)
    return ApiResponse(
        success=True,
        data=[CollegeResponse.model_validate(c) for c in colleges],
    )


@router.patch(
    "/colleges/{college_id}",
    response_model=ApiResponse[CollegeResponse],
)
async def update_college(
    college_id: int,
    data: CollegeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)),
):
    """Update a college. Requires ADMIN role."""
    service = CollegeService(db)
    college = await service.update_college(college_id, data, current_user.id)
    return ApiResponse(
        success=True,
        message="College updated successfully",
        data=CollegeResponse.model_validate(college),
    )


# --- Course Endpoints ---


@router.post(
    "/courses",
    response_model=ApiResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_course(
    data: CourseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)),
):
    """Create a course. Requires ADMIN role."""
    service = CollegeService(db)
    course = await service.create_course(data, current_user.id)
    return ApiResponse(
        success=True,
        message="Course created successfully",
        data=CourseResponse.model_validate(course),
    )


@router.get(
    "/courses",
    response_model=ApiResponse[list[CourseResponse]],
)
async def list_courses(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*READ_ROLES)),
):
    """List courses."""
    service = CollegeService(db)
    courses = await service.list_courses(include_inactive=include_inactive)
    return ApiResponse(
        success=True,
        data=[CourseResponse.model_validate(c) for c in courses],
    )


@router.patch(
    "/courses/{course_id}",
    response_model=ApiResponse[CourseResponse],
)
async def update_course(
    course_id: int,
    data: CourseUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)),
):
    """Update a course. Requires ADMIN role."""
    service = CollegeService(db)
    course = await service.update_course(course_id, data, current_user.id)
    return ApiResponse(
        success=True,
        message="Course updated successfully",
        data=CourseResponse.model_validate(course),
    )
