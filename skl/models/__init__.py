from __future__ import annotations

from datetime import date

from sqlalchemy.orm import validates

from ..app import db
from ..shared.passwords import hash_password, verify_password

ROLES = ("admin", "guru", "siswa")
STUDENT_STATUSES = ("pending", "verified", "rejected")
GRADE_CATEGORIES = ("A", "B", "C", "D")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), nullable=False, unique=True)
    password_hash = db.Column(db.String(255))
    full_name = db.Column(db.String(100), nullable=False, default="")
    role = db.Column(db.String(10), nullable=False, default="siswa")
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    student = db.relationship("Student", foreign_keys=[student_id])

    @validates("role")
    def check_role(self, key, value):
        if value not in ROLES:
            raise ValueError(f"Unknown role: {value!r}")
        return value

    def set_password(self, plain: str) -> None:
        self.password_hash = hash_password(plain)

    def check_password(self, plain: str) -> bool:
        if not self.password_hash:
            return False
        return verify_password(plain, self.password_hash)


class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.Integer, primary_key=True)
    nisn = db.Column(db.String(20), nullable=False, unique=True)
    nis = db.Column(db.String(20), nullable=False)
    full_name = db.Column(db.String(100), nullable=False)
    birth_place = db.Column(db.String(100), nullable=False)
    birth_date = db.Column(db.String(20), nullable=False)
    parent_name = db.Column(db.String(100), nullable=False)
    class_name = db.Column(db.String(20), nullable=False)
    major_name = db.Column(db.String(50))
    status = db.Column(db.String(20), nullable=False, default="pending")
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id", use_alter=True))
    verification_date = db.Column(db.DateTime)
    verification_notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    grades = db.relationship(
        "Grade",
        back_populates="student",
        order_by="[Grade.sort_order, Grade.id]",
        cascade="all, delete-orphan",
    )

    @validates("status")
    def check_status(self, key, value):
        if value not in STUDENT_STATUSES:
            raise ValueError(f"Unknown student status: {value!r}")
        return value


class Grade(db.Model):
    __tablename__ = "grades"

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False)
    subject_name = db.Column(db.String(100), nullable=False)
    value = db.Column(db.Float, nullable=False)
    # explicit table group; NULL falls back to positional grouping
    category = db.Column(db.String(1))
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    student = db.relationship("Student", back_populates="grades")

    @validates("category")
    def check_category(self, key, value):
        if value is None or value == "":
            return None
        value = value.strip().upper()
        if value not in GRADE_CATEGORIES:
            raise ValueError(f"Unknown grade category: {value!r}")
        return value


class Settings(db.Model):
    __tablename__ = "settings"

    id = db.Column(db.Integer, primary_key=True, default=1)
    school_name = db.Column(db.String(200), nullable=False, default="")
    school_address = db.Column(db.Text, nullable=False, default="")
    school_email = db.Column(db.String(200), default="")
    school_website = db.Column(db.String(200), default="")
    school_logo = db.Column(db.Text, default="")
    ministry_logo = db.Column(db.Text, default="")
    school_stamp = db.Column(db.Text, default="")
    headmaster_name = db.Column(db.String(100), nullable=False, default="")
    headmaster_nip = db.Column(db.String(50), nullable=False, default="")
    headmaster_signature = db.Column(db.Text, default="")
    city_name = db.Column(db.String(100), nullable=False, default="")
    province_name = db.Column(db.String(100), nullable=False, default="")
    academic_year = db.Column(db.String(20), nullable=False, default="")
    graduation_date = db.Column(db.String(30), nullable=False, default="")
    graduation_time = db.Column(db.String(20), default="")
    cert_number_prefix = db.Column(db.String(100), default="")
    cert_before_student_data = db.Column(db.Text, default="")
    cert_after_student_data = db.Column(db.Text, default="")
    cert_regulation_text = db.Column(db.Text, default="")
    cert_criteria_text = db.Column(db.Text, default="")
    use_digital_signature = db.Column(db.Boolean, nullable=False, default=False)
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )

    EDITABLE_FIELDS = (
        "school_name",
        "school_address",
        "school_email",
        "school_website",
        "school_logo",
        "ministry_logo",
        "school_stamp",
        "headmaster_name",
        "headmaster_nip",
        "headmaster_signature",
        "city_name",
        "province_name",
        "academic_year",
        "graduation_date",
        "graduation_time",
        "cert_number_prefix",
        "cert_before_student_data",
        "cert_after_student_data",
        "cert_regulation_text",
        "cert_criteria_text",
        "use_digital_signature",
    )

    # always enforce singleton row id=1
    @staticmethod
    def get() -> "Settings | None":
        return db.session.get(Settings, 1)

    @classmethod
    def with_defaults(cls) -> "Settings":
        year = date.today().year
        return cls(
            id=1,
            school_name="YOUR SCHOOL NAME",
            school_address="School Address",
            school_email="school@example.com",
            school_website="www.school.example",
            city_name="City",
            province_name="Province",
            academic_year=f"{year}/{year + 1}",
            graduation_date=date.today().isoformat(),
            headmaster_name="Headmaster Name",
            headmaster_nip="123456789",
            cert_number_prefix="",
            use_digital_signature=False,
        )

    def to_dict(self) -> dict:
        values = {"id": self.id}
        for field in self.EDITABLE_FIELDS:
            value = getattr(self, field)
            if field == "use_digital_signature":
                values[field] = bool(value)
            else:
                values[field] = value or ""
        return values
