"""
Seed the database with default admin accounts and sample data.

    ayurweda-seed create-admins
    ayurweda-seed sample-data

Both commands are idempotent: records that already exist are skipped.
"""
import argparse
import logging
from datetime import time
from typing import List

from sqlalchemy.orm import Session

from .core.database import SessionLocal, init_db
from .core.security import UserRole
from .models.user import User
from .models.doctor import Doctor, DoctorSchedule, DayOfWeek
from .models.medicine import MedicineCategory, Medicine
from .models.course import Course, CourseCategory, CourseLevel
from .services.auth_service import AuthService

logger = logging.getLogger(__name__)

ADMIN_USERS = [
    {"name": "System Administrator", "email": "admin@ayurweda.com", "password": "admin123"},
    {"name": "Ayurweda Manager", "email": "manager@ayurweda.com", "password": "manager123"},
]

WEEKDAYS = [DayOfWeek.MONDAY, DayOfWeek.TUESDAY, DayOfWeek.WEDNESDAY, DayOfWeek.THURSDAY, DayOfWeek.FRIDAY]

SAMPLE_DOCTORS = [
    {
        "name": "Dr. Rajesh Kumar",
        "email": "dr.rajesh@ayurweda.com",
        "specialization": "Ayurvedic Medicine",
        "experience_years": 15,
        "consultation_fee": 2500,
        "days": WEEKDAYS,
        "hours": (time(9, 0), time(17, 0)),
    },
    {
        "name": "Dr. Priya Sharma",
        "email": "dr.priya@ayurweda.com",
        "specialization": "Panchakarma Therapy",
        "experience_years": 12,
        "consultation_fee": 3500,
        "days": WEEKDAYS + [DayOfWeek.SATURDAY],
        "hours": (time(10, 0), time(18, 0)),
    },
    {
        "name": "Dr. Amit Patel",
        "email": "dr.amit@ayurweda.com",
        "specialization": "Herbal Medicine",
        "experience_years": 10,
        "consultation_fee": 2000,
        "days": WEEKDAYS[1:] + [DayOfWeek.SATURDAY],
        "hours": (time(8, 0), time(16, 0)),
    },
]
SAMPLE_DOCTOR_PASSWORD = "password"

SAMPLE_MEDICINES = {
    "Digestive Health": [
        {"name": "Triphala Churna", "price": 450, "stock_quantity": 120, "unit": "100g",
         "dosage_form": "Powder", "active_ingredients": "Amalaki, Bibhitaki, Haritaki"},
        {"name": "Hingvastak Churna", "price": 320, "stock_quantity": 60, "unit": "50g",
         "dosage_form": "Powder"},
    ],
    "Immunity Boosters": [
        {"name": "Chyawanprash", "price": 850, "stock_quantity": 80, "unit": "500g",
         "dosage_form": "Paste", "active_ingredients": "Amla, Ghee, Honey"},
        {"name": "Giloy Ghanvati", "price": 280, "stock_quantity": 150, "unit": "60 tablets",
         "dosage_form": "Tablet"},
    ],
    "Stress & Sleep": [
        {"name": "Ashwagandha Capsules", "price": 600, "stock_quantity": 5, "unit": "60 capsules",
         "dosage_form": "Capsule", "is_prescription_required": True},
    ],
}

SAMPLE_COURSES = {
    "Foundations": [
        {"code": "AYU101", "name": "Introduction to Ayurveda", "level": CourseLevel.BEGINNER,
         "duration": "12 weeks", "credits": 3, "max_students": 40, "fee": 15000},
    ],
    "Clinical Practice": [
        {"code": "AYU210", "name": "Panchakarma Procedures", "level": CourseLevel.INTERMEDIATE,
         "duration": "16 weeks", "credits": 4, "max_students": 25, "fee": 30000},
        {"code": "AYU320", "name": "Dravyaguna: Medicinal Plants", "level": CourseLevel.ADVANCED,
         "duration": "20 weeks", "credits": 5, "max_students": 20, "fee": 42000},
    ],
}

def create_admins(db: Session) -> List[User]:
    """Create the default admin accounts that do not exist yet."""
    auth_service = AuthService(db)
    created = []
    for admin in ADMIN_USERS:
        if db.query(User).filter(User.email == admin["email"]).first():
            logger.info(f"Admin user {admin['email']} already exists")
            continue
        created.append(auth_service.create_user(role=UserRole.ADMIN, **admin))
        logger.info(f"Admin user {admin['email']} created")
    return created

def create_sample_doctors(db: Session) -> List[Doctor]:
    auth_service = AuthService(db)
    created = []
    for sample in SAMPLE_DOCTORS:
        if db.query(User).filter(User.email == sample["email"]).first():
            logger.info(f"Doctor {sample['email']} already exists")
            continue

        user = auth_service.create_user(
            name=sample["name"],
            email=sample["email"],
            password=SAMPLE_DOCTOR_PASSWORD,
            role=UserRole.DOCTOR,
        )
        doctor = Doctor(
            user_id=user.id,
            specialization=sample["specialization"],
            experience_years=sample["experience_years"],
            consultation_fee=sample["consultation_fee"],
            is_available=True,
        )
        start_time, end_time = sample["hours"]
        for day in sample["days"]:
            doctor.schedules.append(DoctorSchedule(
                day_of_week=day, start_time=start_time, end_time=end_time, is_available=True
            ))
        db.add(doctor)
        db.commit()
        created.append(doctor)
        logger.info(f"Created doctor {sample['name']} with {len(sample['days'])} schedule days")
    return created

def create_sample_medicines(db: Session) -> List[Medicine]:
    created = []
    for category_name, medicines in SAMPLE_MEDICINES.items():
        category = db.query(MedicineCategory).filter(MedicineCategory.name == category_name).first()
        if not category:
            category = MedicineCategory(name=category_name, is_active=True)
            db.add(category)
            db.flush()

        for fields in medicines:
            exists = db.query(Medicine).filter(
                Medicine.name == fields["name"], Medicine.category_id == category.id
            ).first()
            if exists:
                continue
            medicine = Medicine(category_id=category.id, is_active=True, **fields)
            db.add(medicine)
            created.append(medicine)
    db.commit()
    logger.info(f"Created {len(created)} sample medicines")
    return created

def create_sample_courses(db: Session) -> List[Course]:
    created = []
    for category_name, courses in SAMPLE_COURSES.items():
        category = db.query(CourseCategory).filter(CourseCategory.name == category_name).first()
        if not category:
            category = CourseCategory(name=category_name, is_active=True)
            db.add(category)
            db.flush()

        for fields in courses:
            if db.query(Course).filter(Course.code == fields["code"]).first():
                continue
            course = Course(category_id=category.id, is_active=True, **fields)
            db.add(course)
            created.append(course)
    db.commit()
    logger.info(f"Created {len(created)} sample courses")
    return created

def load_sample_data(db: Session) -> dict:
    return {
        "doctors": len(create_sample_doctors(db)),
        "medicines": len(create_sample_medicines(db)),
        "courses": len(create_sample_courses(db)),
    }

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ayurweda-seed", description="Seed the Ayurweda database")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("create-admins", help="Create the default admin accounts")
    subparsers.add_parser("sample-data", help="Create sample doctors, medicines and courses")
    return parser

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    init_db()
    db = SessionLocal()
    try:
        if args.command == "create-admins":
            created = create_admins(db)
            logger.info(f"Admin user creation completed ({len(created)} created)")
        else:
            counts = load_sample_data(db)
            logger.info(f"Sample data inserted: {counts}")
    finally:
        db.close()
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
