from sqlalchemy.orm import Session
from sqlalchemy import or_, func, case, distinct
from fastapi import HTTPException, status
from datetime import datetime
from typing import Optional, List, Tuple
import logging

from ..models.user import User
from ..models.course import (
    Course, CourseCategory, CourseLevel, Application, ApplicationStatus, AcademicRecord
)
from ..models.message import Message, ConversationParticipant
from ..core.security import UserRole
from ..schemas.course import (
    CourseCreate, CourseUpdate, CourseCategoryCreate, ApplicationCreate, ApplicationReview,
    AcademicRecordCreate, StudentUpdate
)
from .user_service import UserService

logger = logging.getLogger(__name__)

def _avg(value) -> Optional[float]:
    return round(float(value), 2) if value is not None else None

class CourseService:
    def __init__(self, db: Session):
        self.db = db

    # Catalog

    def list_categories(self, include_inactive: bool = False) -> List[CourseCategory]:
        query = self.db.query(CourseCategory)
        if not include_inactive:
            query = query.filter(CourseCategory.is_active == True)
        return query.order_by(CourseCategory.name).all()

    def create_category(self, data: CourseCategoryCreate) -> CourseCategory:
        category = CourseCategory(name=data.name, description=data.description, is_active=True)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def list_courses(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        level: Optional[CourseLevel] = None,
        active_only: bool = True
    ) -> List[dict]:
        approved = func.sum(case((Application.status == ApplicationStatus.APPROVED, 1), else_=0))
        query = self.db.query(
            Course, func.count(Application.id), approved
        ).outerjoin(Application, Application.course_id == Course.id)

        if active_only:
            query = query.filter(Course.is_active == True)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Course.name.ilike(pattern),
                Course.code.ilike(pattern),
                Course.description.ilike(pattern),
            ))
        if category_id is not None:
            query = query.filter(Course.category_id == category_id)
        if level is not None:
            query = query.filter(Course.level == level)

        rows = query.group_by(Course.id).order_by(Course.name).all()
        return [self._course_fields(course, count, approved_count) for course, count, approved_count in rows]

    def get_course(self, course_id: int, active_only: bool = False) -> Course:
        query = self.db.query(Course).filter(Course.id == course_id)
        if active_only:
            query = query.filter(Course.is_active == True)
        course = query.first()
        if not course:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Course not found"
            )
        return course

    def course_detail(self, course_id: int, active_only: bool = False) -> dict:
        course = self.get_course(course_id, active_only=active_only)
        count = self.db.query(Application).filter(Application.course_id == course.id).count()
        approved = self.db.query(Application).filter(
            Application.course_id == course.id,
            Application.status == ApplicationStatus.APPROVED
        ).count()
        return self._course_fields(course, count, approved)

    def create_course(self, data: CourseCreate) -> Course:
        self._ensure_code_available(data.code)
        if data.category_id is not None:
            self._get_category(data.category_id)

        course = Course(**data.model_dump(), is_active=True)
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)

        logger.info(f"Course {course.code} created")
        return course

    def update_course(self, course_id: int, data: CourseUpdate) -> Course:
        course = self.get_course(course_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("code") and updates["code"] != course.code:
            self._ensure_code_available(updates["code"])
        if updates.get("category_id") is not None:
            self._get_category(updates["category_id"])

        for field, value in updates.items():
            if field in ("code", "name", "level", "credits", "fee", "is_active") and value is None:
                continue
            setattr(course, field, value)

        self.db.commit()
        self.db.refresh(course)
        return course

    def delete_course(self, course_id: int) -> bool:
        """Delete a course; returns True when it was only deactivated."""
        course = self.get_course(course_id)

        has_applications = self.db.query(Application).filter(
            Application.course_id == course.id
        ).count() > 0

        if has_applications:
            course.is_active = False
            self.db.commit()
            logger.info(f"Course {course.code} deactivated (has applications)")
            return True

        self.db.query(AcademicRecord).filter(AcademicRecord.course_id == course.id).delete()
        self.db.delete(course)
        self.db.commit()
        logger.info(f"Course {course_id} deleted")
        return False

    def course_stats(self) -> dict:
        total, active, categories_used, average_fee, capacity = self.db.query(
            func.count(Course.id),
            func.sum(case((Course.is_active == True, 1), else_=0)),
            func.count(distinct(Course.category_id)),
            func.avg(Course.fee),
            func.sum(Course.max_students),
        ).one()

        total = total or 0
        active = int(active or 0)
        return {
            "total_courses": total,
            "active_courses": active,
            "inactive_courses": total - active,
            "categories_used": categories_used or 0,
            "average_fee": float(average_fee or 0),
            "total_capacity": int(capacity or 0),
        }

    # Applications

    def apply(self, student: User, data: ApplicationCreate) -> Application:
        self.get_course(data.course_id, active_only=True)

        existing = self.db.query(Application).filter(
            Application.student_id == student.id,
            Application.course_id == data.course_id
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You have already applied for this course"
            )

        application = Application(
            student_id=student.id,
            course_id=data.course_id,
            personal_statement=data.personal_statement,
            previous_education=data.previous_education,
            student_references=data.references,
            status=ApplicationStatus.PENDING,
        )
        self.db.add(application)
        self.db.commit()
        self.db.refresh(application)

        logger.info(f"Student {student.id} applied to course {data.course_id}")
        return application

    def student_applications(self, student: User) -> List[Application]:
        return self.db.query(Application).filter(
            Application.student_id == student.id
        ).order_by(Application.created_at.desc(), Application.id.desc()).all()

    def find_application(self, student: User, course_id: int) -> Optional[Application]:
        return self.db.query(Application).filter(
            Application.student_id == student.id,
            Application.course_id == course_id
        ).first()

    def list_applications(
        self,
        status_filter: Optional[ApplicationStatus] = None,
        course_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Application], int]:
        query = self.db.query(Application)
        if status_filter is not None:
            query = query.filter(Application.status == status_filter)
        if course_id is not None:
            query = query.filter(Application.course_id == course_id)

        total = query.count()
        applications = query.order_by(Application.created_at.desc(), Application.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return applications, total

    def application_stats(self) -> dict:
        rows = self.db.query(Application.status, func.count(Application.id)) \
            .group_by(Application.status).all()
        by_status = {s.value: 0 for s in ApplicationStatus}
        for application_status, count in rows:
            by_status[application_status.value] = count

        reviewed = self.db.query(Application).filter(Application.reviewed_at.isnot(None)).count()
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "reviewed": reviewed,
        }

    def review_application(
        self,
        reviewer: User,
        application_id: int,
        data: ApplicationReview,
        student_id: Optional[int] = None
    ) -> Application:
        query = self.db.query(Application).filter(Application.id == application_id)
        if student_id is not None:
            query = query.filter(Application.student_id == student_id)
        application = query.first()
        if not application:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Application not found"
            )

        application.status = data.status
        application.admin_notes = data.admin_notes
        application.reviewed_by = reviewer.id
        application.reviewed_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(application)

        logger.info(f"Application {application.id} marked {data.status.value} by {reviewer.id}")
        return application

    # Academic records

    def student_records(self, student_id: int) -> List[AcademicRecord]:
        return self.db.query(AcademicRecord).filter(
            AcademicRecord.student_id == student_id
        ).order_by(
            AcademicRecord.semester_year.desc(), AcademicRecord.semester_number.desc()
        ).all()

    def add_record(self, student_id: int, data: AcademicRecordCreate) -> AcademicRecord:
        self.get_student(student_id)
        self.get_course(data.course_id)

        record = AcademicRecord(student_id=student_id, **data.model_dump())
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def student_dashboard(self, student: User) -> dict:
        applications = self.db.query(Application.status, func.count(Application.id)).filter(
            Application.student_id == student.id
        ).group_by(Application.status).all()
        counts = {s: 0 for s in ApplicationStatus}
        for application_status, count in applications:
            counts[application_status] = count

        records, average_gpa = self.db.query(
            func.count(AcademicRecord.id), func.avg(AcademicRecord.gpa)
        ).filter(AcademicRecord.student_id == student.id).one()

        unread = self.db.query(Message).join(
            ConversationParticipant,
            ConversationParticipant.conversation_id == Message.conversation_id
        ).filter(
            ConversationParticipant.user_id == student.id,
            Message.sender_id != student.id,
            Message.is_read == False
        ).count()

        return {
            "total_applications": sum(counts.values()),
            "pending_applications": counts[ApplicationStatus.PENDING],
            "approved_applications": counts[ApplicationStatus.APPROVED],
            "academic_records": records or 0,
            "average_gpa": _avg(average_gpa),
            "unread_messages": unread,
        }

    # Student administration

    def get_student(self, student_id: int) -> User:
        student = self.db.query(User).filter(
            User.id == student_id,
            User.role == UserRole.STUDENT
        ).first()
        if not student:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Student not found"
            )
        return student

    def list_students(
        self,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[dict], int]:
        query = self.db.query(User).filter(User.role == UserRole.STUDENT)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        total = query.count()
        students = query.order_by(User.created_at.desc(), User.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()

        return [self._student_summary(student) for student in students], total

    def student_stats(self) -> dict:
        total_students = self.db.query(User).filter(User.role == UserRole.STUDENT).count()
        application_counts = self.application_stats()["by_status"]
        records, overall_gpa = self.db.query(
            func.count(AcademicRecord.id), func.avg(AcademicRecord.gpa)
        ).one()
        active_courses = self.db.query(Course).filter(Course.is_active == True).count()

        return {
            "total_students": total_students,
            "total_applications": sum(application_counts.values()),
            "pending_applications": application_counts[ApplicationStatus.PENDING.value],
            "approved_applications": application_counts[ApplicationStatus.APPROVED.value],
            "rejected_applications": application_counts[ApplicationStatus.REJECTED.value],
            "total_academic_records": records or 0,
            "overall_average_gpa": _avg(overall_gpa) or 0.0,
            "active_courses": active_courses,
        }

    def student_detail(self, student_id: int) -> dict:
        student = self.get_student(student_id)
        return {
            "student": student,
            "applications": self.student_applications(student),
            "academic_records": self.student_records(student.id),
        }

    def update_student(self, student_id: int, data: StudentUpdate) -> User:
        student = self.get_student(student_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("email") and updates["email"] != student.email:
            UserService(self.db).ensure_email_available(updates["email"], exclude_user_id=student.id)

        for field, value in updates.items():
            if field in ("name", "email", "is_active") and value is None:
                continue
            setattr(student, field, value)

        self.db.commit()
        self.db.refresh(student)
        return student

    def delete_student(self, student_id: int) -> None:
        student = self.get_student(student_id)
        self.db.query(Application).filter(Application.student_id == student.id).delete()
        self.db.query(AcademicRecord).filter(AcademicRecord.student_id == student.id).delete()
        self.db.delete(student)
        self.db.commit()
        logger.info(f"Student {student_id} deleted")

    def _student_summary(self, student: User) -> dict:
        applications = self.db.query(Application.status, func.count(Application.id)).filter(
            Application.student_id == student.id
        ).group_by(Application.status).all()
        counts = {s: c for s, c in applications}

        records, average_gpa = self.db.query(
            func.count(AcademicRecord.id), func.avg(AcademicRecord.gpa)
        ).filter(AcademicRecord.student_id == student.id).one()

        return {
            "id": student.id,
            "name": student.name,
            "email": student.email,
            "role": student.role,
            "phone": student.phone,
            "address": student.address,
            "profile_picture": student.profile_picture,
            "is_active": student.is_active,
            "last_login": student.last_login,
            "created_at": student.created_at,
            "application_count": sum(counts.values()),
            "approved_count": counts.get(ApplicationStatus.APPROVED, 0),
            "record_count": records or 0,
            "average_gpa": _avg(average_gpa),
        }

    def _course_fields(self, course: Course, application_count: int, approved_count) -> dict:
        return {
            "id": course.id,
            "code": course.code,
            "name": course.name,
            "description": course.description,
            "category_id": course.category_id,
            "category_name": course.category_name,
            "level": course.level,
            "duration": course.duration,
            "credits": course.credits or 0,
            "max_students": course.max_students,
            "fee": float(course.fee or 0),
            "start_date": course.start_date,
            "end_date": course.end_date,
            "is_active": course.is_active,
            "application_count": application_count or 0,
            "approved_count": int(approved_count or 0),
        }

    def _get_category(self, category_id: int) -> CourseCategory:
        category = self.db.query(CourseCategory).filter(CourseCategory.id == category_id).first()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Course category not found"
            )
        return category

    def _ensure_code_available(self, code: str):
        if self.db.query(Course).filter(Course.code == code).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Course code already exists"
            )
