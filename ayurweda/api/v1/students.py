from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional, List

from ...core.database import get_db
from ...api.deps import get_student_user, require_feature
from ...services.course_service import CourseService
from ...schemas.course import (
    CourseResponse, CourseCategoryResponse, ApplicationCreate, ApplicationResponse,
    ApplicationCheck, AcademicRecordResponse, StudentDashboardStats
)
from ...models.course import CourseLevel
from ...models.user import User

router = APIRouter(prefix="/students", tags=["Students"])

@router.get("/courses", response_model=List[CourseResponse])
async def list_courses(
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    level: Optional[CourseLevel] = None,
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    """Active courses open for applications."""
    return CourseService(db).list_courses(search=search, category_id=category_id, level=level)

@router.get("/courses/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    return CourseService(db).course_detail(course_id, active_only=True)

@router.get("/course-categories", response_model=List[CourseCategoryResponse])
async def list_course_categories(
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    return CourseService(db).list_categories()

@router.post(
    "/applications",
    response_model=ApplicationResponse,
    dependencies=[Depends(require_feature("STUDENT_APPLICATIONS_ENABLED"))]
)
async def apply_for_course(
    application_data: ApplicationCreate,
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    return CourseService(db).apply(student, application_data)

@router.get("/application-status", response_model=List[ApplicationResponse])
async def application_status(
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    return CourseService(db).student_applications(student)

@router.get("/check-application/{course_id}", response_model=ApplicationCheck)
async def check_application(
    course_id: int,
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    application = CourseService(db).find_application(student, course_id)
    return {"has_applied": application is not None, "application": application}

@router.get("/academic-records", response_model=List[AcademicRecordResponse])
async def academic_records(
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    return CourseService(db).student_records(student.id)

@router.get("/dashboard-stats", response_model=StudentDashboardStats)
async def dashboard_stats(
    db: Session = Depends(get_db),
    student: User = Depends(get_student_user)
):
    return CourseService(db).student_dashboard(student)
