from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, List

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.course_service import CourseService
from ...schemas.common import MessageResponse, page_meta
from ...schemas.auth import UserResponse
from ...schemas.course import (
    CourseCreate, CourseUpdate, CourseResponse, CourseDeleteResult, CourseStats,
    CourseCategoryCreate, CourseCategoryResponse, ApplicationReview, ApplicationResponse,
    ApplicationList, ApplicationStats, AcademicRecordCreate, AcademicRecordResponse,
    StudentUpdate, StudentList, StudentDetail, StudentStats
)
from ...models.course import ApplicationStatus
from ...models.user import User

router = APIRouter(prefix="/admin", tags=["Admin: Students"])

# Courses

@router.get("/courses", response_model=List[CourseResponse])
async def list_courses(
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Every course, active or not, with application counts."""
    return CourseService(db).list_courses(search=search, category_id=category_id, active_only=False)

@router.get("/courses/stats", response_model=CourseStats)
async def course_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).course_stats()

@router.post("/courses", response_model=CourseResponse)
async def create_course(
    course_data: CourseCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    course_service = CourseService(db)
    course = course_service.create_course(course_data)
    return course_service.course_detail(course.id)

@router.put("/courses/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    course_data: CourseUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    course_service = CourseService(db)
    course_service.update_course(course_id, course_data)
    return course_service.course_detail(course_id)

@router.delete("/courses/{course_id}", response_model=CourseDeleteResult)
async def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Courses with applications are deactivated instead of removed."""
    soft_delete = CourseService(db).delete_course(course_id)
    if soft_delete:
        return {"message": "Course deactivated (has existing applications)", "soft_delete": True}
    return {"message": "Course deleted successfully", "soft_delete": False}

# Course categories

@router.get("/course-categories", response_model=List[CourseCategoryResponse])
async def list_course_categories(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).list_categories(include_inactive=True)

@router.post("/course-categories", response_model=CourseCategoryResponse)
async def create_course_category(
    category_data: CourseCategoryCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).create_category(category_data)

# Applications

@router.get("/applications", response_model=ApplicationList)
async def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    course_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    applications, total = CourseService(db).list_applications(status_filter, course_id, page, limit)
    return {"applications": applications, "pagination": page_meta(page, limit, total)}

@router.get("/applications/stats", response_model=ApplicationStats)
async def application_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).application_stats()

@router.put("/applications/{application_id}", response_model=ApplicationResponse)
async def review_application(
    application_id: int,
    review_data: ApplicationReview,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).review_application(admin, application_id, review_data)

# Students

@router.get("/students", response_model=StudentList)
async def list_students(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    students, total = CourseService(db).list_students(search, page, limit)
    return {"students": students, "pagination": page_meta(page, limit, total)}

@router.get("/students/stats", response_model=StudentStats)
async def student_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).student_stats()

@router.get("/students/{student_id}", response_model=StudentDetail)
async def get_student(
    student_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).student_detail(student_id)

@router.put("/students/{student_id}", response_model=UserResponse)
async def update_student(
    student_id: int,
    student_data: StudentUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).update_student(student_id, student_data)

@router.delete("/students/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    CourseService(db).delete_student(student_id)
    return {"message": "Student deleted successfully"}

@router.put("/students/{student_id}/applications/{application_id}", response_model=ApplicationResponse)
async def review_student_application(
    student_id: int,
    application_id: int,
    review_data: ApplicationReview,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    course_service = CourseService(db)
    course_service.get_student(student_id)
    return course_service.review_application(admin, application_id, review_data, student_id=student_id)

@router.post("/students/{student_id}/academic-records", response_model=AcademicRecordResponse)
async def add_academic_record(
    student_id: int,
    record_data: AcademicRecordCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CourseService(db).add_record(student_id, record_data)
