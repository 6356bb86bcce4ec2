"""Service for college and course master data."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import DuplicateError, NotFoundError
from src.modules.colleges.models import College, Course
from src.modules.colleges.schemas import CollegeCreate, CollegeUpdate, CourseCreate, CourseUpdate


class CollegeService:
    """Service for managing colleges and courses."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- College Methods ---

    async def create_college(self, data: CollegeCreate, created_by_id: int) -> College:
        """Create a new college."""
        existing = await self.db.execute(select(College.id).where(College.name == data.name))
        if existing.scalar_one_or_none():
            raise DuplicateError("College", "name", data.name)

        college = College(name=data.name, city=data.city)
        self.db.add(college)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="College",
            entity_id=college.id,
            user_id=created_by_id,
            new_values={"name": data.name, "city": data.city},
        )

        await self.db.commit()
        await self.db.refresh(college)
        return college

    async def get_college_by_id(self, college_id: int) -> College:
        """Get college by ID."""
        result = await self.db.execute(select(College).where(College.id == college_id))
        college = result.scalar_one_or_none()
        if not college:
            raise NotFoundError("College", college_id)
        return college

    async def list_colleges(self, include_inactive: bool = False) -> list[College]:
        """List colleges by name."""
        query = select(College).order_by(College.name)
        if not include_inactive:
            query = query.where(College.is_active == True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_college(
        self, college_id: int, data: CollegeUpdate, updated_by_id: int
    ) -> College:
        """Update a college."""
        college = await self.get_college_by_id(college_id)
        old_values = {"name": college.name, "city": college.city, "is_active": college.is_active}
        new_values = {}

        if data.name is not None and data.name != college.name:
            existing = await self.db.execute(
                select(College.id).where(College.name == data.name, College.id != college_id)
            )
            if existing.scalar_one_or_none():
                raise DuplicateError("College", "name", data.name)
            college.name = data.name
            new_values["name"] = data.name

        if data.city is not None and data.city != college.city:
            college.city = data.city
            new_values["city"] = data.city

        if data.is_active is not None and data.is_active != college.is_active:
            college.is_active = data.is_active
            new_values["is_active"] = data.is_active

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="College",
                entity_id=college.id,
                user_id=updated_by_id,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        await self.db.refresh(college)
        return college

    # --- Course Methods ---

    async def create_course(self, data: CourseCreate, created_by_id: int) -> Course:
        """Create a new course."""
        existing = await self.db.execute(select(Course.id).where(Course.name == data.name))
        if existing.scalar_one_or_none():
            raise DuplicateError("Course", "name", data.name)

        course = Course(name=data.name, duration_years=data.duration_years)
        self.db.add(course)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Course",
            entity_id=course.id,
            user_id=created_by_id,
            new_values={"name": data.name, "duration_years": data.duration_years},
        )

        await self.db.commit()
        await self.db.refresh(course)
        return course

    async def get_course_by_id(self, course_id: int) -> Course:
        """Get course by ID."""
        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()
        if not course:
            raise NotFoundError("Course", course_id)
        return course

    async def list_courses(self, include_inactive: bool = False) -> list[Course]:
        """List courses by name."""
        query = select(Course).order_by(Course.name)
        if not include_inactive:
            query = query.where(Course.is_active == True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_course(
        self, course_id: int, data: CourseUpdate, updated_by_id: int
    ) -> Course:
        """Update a course. Shortening it does not touch existing academic records."""
        course = await self.get_course_by_id(course_id)
        old_values = {
            "name": course.name,
            "duration_years": course.duration_years,
            "is_active": course.is_active,
        }
        new_values = {}

        if data.name is not None and data.name != course.name:
            existing = await self.db.execute(
                select(Course.id).where(Course.name == data.name, Course.id != course_id)
            )
            if existing.scalar_one_or_none():
                raise DuplicateError("Course", "name", data.name)
            course.name = data.name
            new_values["name"] = data.name

        if data.duration_years is not None and data.duration_years != course.duration_years:
            course.duration_years = data.duration_years
            new_values["duration_years"] = data.duration_years

        if data.is_active is not None and data.is_active != course.is_active:
            course.is_active = data.is_active
            new_values["is_active"] = data.is_active

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Course",
                entity_id=course.id,
                user_id=updated_by_id,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        await self.db.refresh(course)
        return course
