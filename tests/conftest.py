import os
from datetime import date, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set testing environment before the application reads its settings
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test.db")

from ayurweda.main import app
from ayurweda.core.database import get_db, Base
from ayurweda.core.security import UserRole, create_access_token
from ayurweda.models.doctor import Doctor, DoctorSchedule, WEEKDAY_ORDER
from ayurweda.models.medicine import MedicineCategory, Medicine
from ayurweda.models.course import Course, CourseCategory
from ayurweda.services.auth_service import AuthService

SQLALCHEMY_DATABASE_URL = os.environ["TEST_DATABASE_URL"]
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

TEST_PASSWORD = "password123"

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    yield session
    session.close()

@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def auth_headers():
    """Build the token header for a user, as the frontend sends it."""
    def _headers(user):
        return {"x-auth-token": create_access_token(user.id, user.name, user.role)}

    return _headers

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.PATIENT, email=None, name=None, password=TEST_PASSWORD, **extra):
        counter["n"] += 1
        return AuthService(db).create_user(
            name=name or f"{role.value.title()} {counter['n']}",
            email=email or f"{role.value}{counter['n']}@example.com",
            password=password,
            role=role,
            **extra
        )

    return _make

@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, email="admin@example.com", name="Admin User")

@pytest.fixture
def patient(make_user):
    return make_user(UserRole.PATIENT, email="patient@example.com", name="Pat Patient",
                     address="12 Temple Road, Kandy")

@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT, email="student@example.com", name="Sam Student")

@pytest.fixture
def make_doctor(db, make_user):
    def _make(email=None, name=None, fee=2000, start=time(9, 0), end=time(12, 0), days=None, **extra):
        user = make_user(UserRole.DOCTOR, email=email, name=name)
        doctor = Doctor(
            user_id=user.id,
            specialization=extra.pop("specialization", "Ayurvedic Medicine"),
            experience_years=extra.pop("experience_years", 8),
            consultation_fee=fee,
            is_available=extra.pop("is_available", True),
        )
        for day in (WEEKDAY_ORDER if days is None else days):
            doctor.schedules.append(DoctorSchedule(
                day_of_week=day, start_time=start, end_time=end, is_available=True
            ))
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _make

@pytest.fixture
def doctor(make_doctor):
    """A doctor working 09:00-12:00 every day of the week."""
    return make_doctor(email="doctor@example.com", name="Dr. Test")

@pytest.fixture
def medicine_category(db):
    category = MedicineCategory(name="Digestive Health", description="Digestion support", is_active=True)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category

@pytest.fixture
def make_medicine(db, medicine_category):
    def _make(name="Triphala Churna", price=450, stock_quantity=100, **extra):
        medicine = Medicine(
            category_id=extra.pop("category_id", medicine_category.id),
            name=name,
            price=price,
            stock_quantity=stock_quantity,
            is_active=extra.pop("is_active", True),
            **extra
        )
        db.add(medicine)
        db.commit()
        db.refresh(medicine)
        return medicine

    return _make

@pytest.fixture
def make_course(db):
    def _make(code="AYU101", name="Introduction to Ayurveda", **extra):
        category = db.query(CourseCategory).filter(CourseCategory.name == "Foundations").first()
        if not category:
            category = CourseCategory(name="Foundations", is_active=True)
            db.add(category)
            db.commit()
        course = Course(
            code=code,
            name=name,
            category_id=category.id,
            credits=extra.pop("credits", 3),
            fee=extra.pop("fee", 15000),
            is_active=extra.pop("is_active", True),
            **extra
        )
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    return _make

@pytest.fixture
def tomorrow():
    return date.today() + timedelta(days=1)
