from datetime import date, datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.course import CourseLevel, ApplicationStatus, RecordStatus
from .auth import UserResponse, check_name
from .common import PageMeta

class CourseCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

class CourseCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    is_active: bool

class CourseCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[int] = None
    level: CourseLevel = CourseLevel.BEGINNER
    duration: Optional[str] = Field(None, max_length=50)
    credits: int = Field(0, ge=0)
    max_students: Optional[int] = Field(None, ge=1)
    fee: float = Field(0, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

class CourseUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[int] = None
    level: Optional[CourseLevel] = None
    duration: Optional[str] = Field(None, max_length=50)
    credits: Optional[int] = Field(None, ge=0)
    max_students: Optional[int] = Field(None, ge=1)
    fee: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None

class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    level: CourseLevel
    duration: Optional[str] = None
    credits: int
    max_students: Optional[int] = None
    fee: float
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool
    application_count: int = 0
    approved_count: int = 0

class CourseDeleteResult(BaseModel):
    message: str
    soft_delete: bool

class ApplicationCreate(BaseModel):
    course_id: int
    personal_statement: str
    previous_education: Optional[str] = None
    references: Optional[str] = None

    @field_validator("personal_statement")
    @classmethod
    def statement_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Personal statement is required")
        return v.strip()

class ApplicationReview(BaseModel):
    status: ApplicationStatus
    admin_notes: Optional[str] = None

class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    course_id: int
    course_name: Optional[str] = None
    course_code: Optional[str] = None
    personal_statement: str
    previous_education: Optional[str] = None
    student_references: Optional[str] = None
    status: ApplicationStatus
    admin_notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class ApplicationCheck(BaseModel):
    has_applied: bool
    application: Optional[ApplicationResponse] = None

class AcademicRecordCreate(BaseModel):
    course_id: int
    semester_year: int = Field(..., ge=1900, le=2100)
    semester_number: int = Field(..., ge=1, le=3)
    gpa: Optional[float] = Field(None, ge=0, le=4)
    total_credits: int = Field(0, ge=0)
    status: RecordStatus = RecordStatus.ENROLLED
    completion_date: Optional[date] = None
    notes: Optional[str] = None

class AcademicRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    course_id: int
    course_name: Optional[str] = None
    course_code: Optional[str] = None
    semester_year: int
    semester_number: int
    gpa: Optional[float] = None
    total_credits: int
    status: RecordStatus
    completion_date: Optional[date] = None
    notes: Optional[str] = None

class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return check_name(v)

class StudentSummary(UserResponse):
    application_count: int = 0
    approved_count: int = 0
    record_count: int = 0
    average_gpa: Optional[float] = None

class StudentList(BaseModel):
    students: List[StudentSummary]
    pagination: PageMeta

class StudentDetail(BaseModel):
    student: UserResponse
    applications: List[ApplicationResponse]
    academic_records: List[AcademicRecordResponse]

class StudentDashboardStats(BaseModel):
    total_applications: int
    pending_applications: int
    approved_applications: int
    academic_records: int
    average_gpa: Optional[float] = None
    unread_messages: int

class ApplicationList(BaseModel):
    applications: List[ApplicationResponse]
    pagination: PageMeta

class ApplicationStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    reviewed: int

class CourseStats(BaseModel):
    total_courses: int
    active_courses: int
    inactive_courses: int
    categories_used: int
    average_fee: float
    total_capacity: int

class StudentStats(BaseModel):
    total_students: int
    total_applications: int
    pending_applications: int
    approved_applications: int
    rejected_applications: int
    total_academic_records: int
    overall_average_gpa: float
    active_courses: int
