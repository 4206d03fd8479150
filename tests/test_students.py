import pytest

from ayurweda.core.config import settings
from ayurweda.core.security import UserRole
from ayurweda.models.course import (
    AcademicRecord, Application, ApplicationStatus, CourseLevel, RecordStatus
)

def apply(client, headers, course, statement="I want to study Ayurveda", **extra):
    return client.post("/api/v1/students/applications", headers=headers, json={
        "course_id": course.id,
        "personal_statement": statement,
        **extra
    })

@pytest.fixture
def add_record(db):
    def _add(student, course, gpa=3.5, year=2024, semester=1, status=RecordStatus.COMPLETED):
        record = AcademicRecord(
            student_id=student.id,
            course_id=course.id,
            semester_year=year,
            semester_number=semester,
            gpa=gpa,
            total_credits=course.credits,
            status=status,
        )
        db.add(record)
        db.commit()
        return record

    return _add

class TestCourseCatalog:

    def test_list_active_courses(self, client, student, make_course, auth_headers):
        make_course(code="AYU210", name="Panchakarma Principles", level=CourseLevel.INTERMEDIATE)
        make_course(code="AYU101", name="Introduction to Ayurveda")
        make_course(code="AYU999", name="Archived Course", is_active=False)

        response = client.get("/api/v1/students/courses", headers=auth_headers(student))
        assert response.status_code == 200
        data = response.json()
        assert [c["code"] for c in data] == ["AYU101", "AYU210"]
        assert data[0]["category_name"] == "Foundations"
        assert data[0]["application_count"] == 0

    def test_search_and_level(self, client, student, make_course, auth_headers):
        make_course(code="AYU101", name="Introduction to Ayurveda")
        make_course(code="AYU320", name="Dravyaguna", level=CourseLevel.ADVANCED, description="Herbal pharmacology")
        headers = auth_headers(student)

        response = client.get("/api/v1/students/courses", headers=headers, params={"search": "pharmacology"})
        assert [c["code"] for c in response.json()] == ["AYU320"]

        response = client.get("/api/v1/students/courses", headers=headers, params={"level": "advanced"})
        assert [c["code"] for c in response.json()] == ["AYU320"]

    def test_course_detail(self, client, student, make_course, auth_headers):
        course = make_course()
        response = client.get(f"/api/v1/students/courses/{course.id}", headers=auth_headers(student))
        assert response.status_code == 200
        assert response.json()["code"] == "AYU101"

        inactive = make_course(code="OLD1", is_active=False)
        response = client.get(f"/api/v1/students/courses/{inactive.id}", headers=auth_headers(student))
        assert response.status_code == 404

    def test_course_categories(self, client, student, make_course, auth_headers):
        make_course()
        response = client.get("/api/v1/students/course-categories", headers=auth_headers(student))
        assert [c["name"] for c in response.json()] == ["Foundations"]

    def test_students_only(self, client, patient, auth_headers):
        response = client.get("/api/v1/students/courses", headers=auth_headers(patient))
        assert response.status_code == 403

class TestApplications:

    def test_apply(self, client, student, make_course, auth_headers):
        course = make_course()
        response = apply(client, auth_headers(student), course,
                         statement="  Passionate about herbal medicine  ",
                         previous_education="BSc Botany",
                         references="Dr. Perera")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["personal_statement"] == "Passionate about herbal medicine"
        assert data["student_references"] == "Dr. Perera"
        assert data["course_code"] == "AYU101"

    def test_duplicate_application(self, client, student, make_course, auth_headers):
        course = make_course()
        headers = auth_headers(student)
        apply(client, headers, course)

        response = apply(client, headers, course)
        assert response.status_code == 400
        assert response.json()["detail"] == "You have already applied for this course"

    def test_blank_statement(self, client, student, make_course, auth_headers):
        course = make_course()
        response = apply(client, auth_headers(student), course, statement="   ")
        assert response.status_code == 422

    def test_inactive_course(self, client, student, make_course, auth_headers):
        course = make_course(is_active=False)
        response = apply(client, auth_headers(student), course)
        assert response.status_code == 404

    def test_applications_switched_off(self, client, student, make_course, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "STUDENT_APPLICATIONS_ENABLED", False)
        course = make_course()
        response = apply(client, auth_headers(student), course)
        assert response.status_code == 403

    def test_check_application(self, client, student, make_course, auth_headers):
        course = make_course()
        headers = auth_headers(student)

        response = client.get(f"/api/v1/students/check-application/{course.id}", headers=headers)
        assert response.json() == {"has_applied": False, "application": None}

        apply(client, headers, course)
        response = client.get(f"/api/v1/students/check-application/{course.id}", headers=headers)
        assert response.json()["has_applied"] is True
        assert response.json()["application"]["course_id"] == course.id

    def test_application_status(self, client, student, make_course, auth_headers):
        first = make_course(code="AYU101")
        second = make_course(code="AYU210", name="Panchakarma Principles")
        headers = auth_headers(student)
        apply(client, headers, first)
        apply(client, headers, second)

        response = client.get("/api/v1/students/application-status", headers=headers)
        assert [a["course_code"] for a in response.json()] == ["AYU210", "AYU101"]

class TestStudentDashboard:

    def test_records_and_stats(self, client, student, make_course, add_record, auth_headers):
        first = make_course(code="AYU101")
        second = make_course(code="AYU210", name="Panchakarma Principles")
        add_record(student, first, gpa=3.0, year=2023)
        add_record(student, second, gpa=4.0, year=2024)
        headers = auth_headers(student)
        apply(client, headers, first)

        response = client.get("/api/v1/students/academic-records", headers=headers)
        assert [r["course_code"] for r in response.json()] == ["AYU210", "AYU101"]

        response = client.get("/api/v1/students/dashboard-stats", headers=headers)
        assert response.status_code == 200
        assert response.json() == {
            "total_applications": 1,
            "pending_applications": 1,
            "approved_applications": 0,
            "academic_records": 2,
            "average_gpa": 3.5,
            "unread_messages": 0,
        }

    def test_empty_dashboard(self, client, student, auth_headers):
        response = client.get("/api/v1/students/dashboard-stats", headers=auth_headers(student))
        assert response.json()["average_gpa"] is None
        assert response.json()["total_applications"] == 0

class TestAdminCourses:

    def test_create_course(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        category = client.post("/api/v1/admin/course-categories", headers=headers, json={
            "name": "Clinical Practice"
        }).json()

        response = client.post("/api/v1/admin/courses", headers=headers, json={
            "code": "AYU401",
            "name": "Clinical Ayurveda",
            "category_id": category["id"],
            "level": "advanced",
            "credits": 4,
            "max_students": 25,
            "fee": 45000
        })
        assert response.status_code == 200
        data = response.json()
        assert data["category_name"] == "Clinical Practice"
        assert data["fee"] == 45000
        assert data["is_active"] is True

    def test_duplicate_code(self, client, admin, make_course, auth_headers):
        make_course(code="AYU101")
        response = client.post("/api/v1/admin/courses", headers=auth_headers(admin), json={
            "code": "AYU101", "name": "Copy"
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Course code already exists"

    def test_update_course(self, client, admin, make_course, auth_headers):
        course = make_course()
        other = make_course(code="AYU210", name="Panchakarma Principles")
        headers = auth_headers(admin)

        response = client.put(f"/api/v1/admin/courses/{course.id}", headers=headers,
                              json={"name": "Ayurveda Foundations", "max_students": 40})
        assert response.status_code == 200
        assert response.json()["name"] == "Ayurveda Foundations"
        assert response.json()["max_students"] == 40

        response = client.put(f"/api/v1/admin/courses/{course.id}", headers=headers, json={"code": other.code})
        assert response.status_code == 400

    def test_admin_list_includes_inactive(self, client, admin, make_course, auth_headers):
        make_course(code="AYU101")
        make_course(code="OLD1", name="Old Course", is_active=False)
        response = client.get("/api/v1/admin/courses", headers=auth_headers(admin))
        assert len(response.json()) == 2

    def test_hard_delete_without_applications(self, client, db, admin, student, make_course, add_record,
                                              auth_headers):
        course = make_course()
        add_record(student, course)

        response = client.delete(f"/api/v1/admin/courses/{course.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json() == {"message": "Course deleted successfully", "soft_delete": False}
        assert db.query(AcademicRecord).count() == 0

    def test_soft_delete_with_applications(self, client, admin, student, make_course, auth_headers):
        course = make_course()
        apply(client, auth_headers(student), course)

        response = client.delete(f"/api/v1/admin/courses/{course.id}", headers=auth_headers(admin))
        assert response.json()["soft_delete"] is True

        listing = client.get("/api/v1/admin/courses", headers=auth_headers(admin)).json()
        assert listing[0]["is_active"] is False
        assert listing[0]["application_count"] == 1

    def test_course_stats(self, client, admin, make_course, auth_headers):
        make_course(code="AYU101", fee=10000, max_students=20)
        make_course(code="AYU210", fee=20000, max_students=30, is_active=False)

        response = client.get("/api/v1/admin/courses/stats", headers=auth_headers(admin))
        assert response.json() == {
            "total_courses": 2,
            "active_courses": 1,
            "inactive_courses": 1,
            "categories_used": 1,
            "average_fee": 15000,
            "total_capacity": 50,
        }

    def test_categories_include_inactive(self, client, db, admin, make_course, auth_headers):
        category = make_course().category
        category.is_active = False
        db.commit()

        response = client.get("/api/v1/admin/course-categories", headers=auth_headers(admin))
        assert [c["is_active"] for c in response.json()] == [False]

class TestAdminApplications:

    def test_list_and_review(self, client, admin, student, make_user, make_course, auth_headers):
        course = make_course()
        other = make_user(UserRole.STUDENT)
        apply(client, auth_headers(student), course)
        application = apply(client, auth_headers(other), course).json()
        headers = auth_headers(admin)

        response = client.get("/api/v1/admin/applications", headers=headers, params={"limit": 1})
        data = response.json()
        assert data["pagination"]["total"] == 2
        assert data["applications"][0]["id"] == application["id"]

        response = client.put(f"/api/v1/admin/applications/{application['id']}", headers=headers, json={
            "status": "approved", "admin_notes": "Strong statement"
        })
        assert response.status_code == 200
        reviewed = response.json()
        assert reviewed["status"] == "approved"
        assert reviewed["reviewed_by"] == admin.id
        assert reviewed["reviewed_at"] is not None

        response = client.get("/api/v1/admin/applications", headers=headers, params={"status": "approved"})
        assert [a["id"] for a in response.json()["applications"]] == [application["id"]]

    def test_application_stats(self, client, admin, student, make_course, auth_headers):
        first = make_course(code="AYU101")
        second = make_course(code="AYU210", name="Panchakarma Principles")
        apply(client, auth_headers(student), first)
        application = apply(client, auth_headers(student), second).json()
        client.put(f"/api/v1/admin/applications/{application['id']}", headers=auth_headers(admin),
                   json={"status": "rejected"})

        response = client.get("/api/v1/admin/applications/stats", headers=auth_headers(admin))
        assert response.json() == {
            "total": 2,
            "by_status": {"pending": 1, "approved": 0, "rejected": 1, "waitlisted": 0},
            "reviewed": 1,
        }

    def test_review_unknown_status(self, client, admin, student, make_course, auth_headers):
        application = apply(client, auth_headers(student), make_course()).json()
        response = client.put(f"/api/v1/admin/applications/{application['id']}",
                              headers=auth_headers(admin), json={"status": "maybe"})
        assert response.status_code == 422

    def test_review_missing_application(self, client, admin, auth_headers):
        response = client.put("/api/v1/admin/applications/999", headers=auth_headers(admin),
                              json={"status": "approved"})
        assert response.status_code == 404

class TestAdminStudents:

    def test_list_students(self, client, admin, student, make_user, make_course, add_record, auth_headers):
        make_user(UserRole.STUDENT, name="Nila Student")
        make_user(UserRole.PATIENT)
        add_record(student, make_course(), gpa=3.25)
        headers = auth_headers(admin)

        response = client.get("/api/v1/admin/students", headers=headers)
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 2

        response = client.get("/api/v1/admin/students", headers=headers, params={"search": "Sam"})
        [row] = response.json()["students"]
        assert row["record_count"] == 1
        assert row["average_gpa"] == 3.25

    def test_student_stats(self, client, db, admin, student, make_course, add_record, auth_headers):
        course = make_course()
        add_record(student, course, gpa=2.5)
        add_record(student, course, gpa=3.5, semester=2)
        db.add(Application(student_id=student.id, course_id=course.id,
                           personal_statement="Statement", status=ApplicationStatus.APPROVED))
        db.commit()

        response = client.get("/api/v1/admin/students/stats", headers=auth_headers(admin))
        assert response.json() == {
            "total_students": 1,
            "total_applications": 1,
            "pending_applications": 0,
            "approved_applications": 1,
            "rejected_applications": 0,
            "total_academic_records": 2,
            "overall_average_gpa": 3.0,
            "active_courses": 1,
        }

    def test_student_detail(self, client, admin, student, make_course, add_record, auth_headers):
        course = make_course()
        add_record(student, course)
        apply(client, auth_headers(student), course)

        response = client.get(f"/api/v1/admin/students/{student.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["student"]["email"] == "student@example.com"
        assert len(data["applications"]) == 1
        assert len(data["academic_records"]) == 1

    def test_non_student_not_found(self, client, admin, patient, auth_headers):
        response = client.get(f"/api/v1/admin/students/{patient.id}", headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["detail"] == "Student not found"

    def test_update_student(self, client, admin, student, patient, auth_headers):
        headers = auth_headers(admin)
        response = client.put(f"/api/v1/admin/students/{student.id}", headers=headers,
                              json={"phone": "0771234567", "is_active": False})
        assert response.status_code == 200
        assert response.json()["phone"] == "0771234567"
        assert response.json()["is_active"] is False

        response = client.put(f"/api/v1/admin/students/{student.id}", headers=headers,
                              json={"email": patient.email})
        assert response.status_code == 400

    def test_delete_student(self, client, db, admin, student, make_course, auth_headers):
        apply(client, auth_headers(student), make_course())

        response = client.delete(f"/api/v1/admin/students/{student.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert db.query(Application).count() == 0
        assert client.get(f"/api/v1/admin/students/{student.id}", headers=auth_headers(admin)).status_code == 404

    def test_review_through_student(self, client, admin, student, make_user, make_course, auth_headers):
        course = make_course()
        application = apply(client, auth_headers(student), course).json()
        other = make_user(UserRole.STUDENT)
        headers = auth_headers(admin)

        response = client.put(f"/api/v1/admin/students/{other.id}/applications/{application['id']}",
                              headers=headers, json={"status": "approved"})
        assert response.status_code == 404

        response = client.put(f"/api/v1/admin/students/{student.id}/applications/{application['id']}",
                              headers=headers, json={"status": "waitlisted"})
        assert response.status_code == 200
        assert response.json()["status"] == "waitlisted"

    def test_add_academic_record(self, client, admin, student, make_course, auth_headers):
        course = make_course()
        headers = auth_headers(admin)
        response = client.post(f"/api/v1/admin/students/{student.id}/academic-records", headers=headers, json={
            "course_id": course.id,
            "semester_year": 2025,
            "semester_number": 1,
            "gpa": 3.7,
            "total_credits": 3,
            "status": "completed"
        })
        assert response.status_code == 200
        assert response.json()["gpa"] == 3.7

        response = client.post(f"/api/v1/admin/students/{student.id}/academic-records", headers=headers, json={
            "course_id": course.id, "semester_year": 2025, "semester_number": 1, "gpa": 4.5
        })
        assert response.status_code == 422
