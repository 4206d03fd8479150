from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Date, Boolean, Text, Numeric,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class CourseLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"

class RecordStatus(str, enum.Enum):
    ENROLLED = "enrolled"
    COMPLETED = "completed"
    DROPPED = "dropped"
    FAILED = "failed"

class CourseCategory(Base):
    __tablename__ = "course_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())

    courses = relationship("Course", back_populates="category")

class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("course_categories.id"), nullable=True)
    level = Column(SQLEnum(CourseLevel), default=CourseLevel.BEGINNER)
    duration = Column(String(50), nullable=True)
    credits = Column(Integer, default=0)
    max_students = Column(Integer, nullable=True)
    fee = Column(Numeric(10, 2), default=0)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("CourseCategory", back_populates="courses")
    applications = relationship("Application", back_populates="course")

    @property
    def category_name(self):
        return self.category.name if self.category else None

    def __repr__(self):
        return f"<Course(id={self.id}, code='{self.code}')>"

class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_application_student_course"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    personal_statement = Column(Text, nullable=False)
    previous_education = Column(Text, nullable=True)
    student_references = Column(Text, nullable=True)
    status = Column(SQLEnum(ApplicationStatus), default=ApplicationStatus.PENDING, index=True)

    # Review
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    student = relationship("User", foreign_keys=[student_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])
    course = relationship("Course", back_populates="applications")

    @property
    def course_name(self):
        return self.course.name if self.course else None

    @property
    def course_code(self):
        return self.course.code if self.course else None

    @property
    def student_name(self):
        return self.student.name if self.student else None

    @property
    def student_email(self):
        return self.student.email if self.student else None

    def __repr__(self):
        return f"<Application(id={self.id}, student_id={self.student_id}, course_id={self.course_id}, status='{self.status}')>"

class AcademicRecord(Base):
    __tablename__ = "academic_records"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    semester_year = Column(Integer, nullable=False)
    semester_number = Column(Integer, nullable=False)
    gpa = Column(Numeric(3, 2), nullable=True)
    total_credits = Column(Integer, default=0)
    status = Column(SQLEnum(RecordStatus), default=RecordStatus.ENROLLED)
    completion_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    student = relationship("User")
    course = relationship("Course")

    @property
    def course_name(self):
        return self.course.name if self.course else None

    @property
    def course_code(self):
        return self.course.code if self.course else None
