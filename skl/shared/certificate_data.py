from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

DEFAULT_MAJOR_NAME = "MIPA"


@dataclass(frozen=True)
class GradeEntry:
    name: str
    value: float
    category: str | None = None


@dataclass(frozen=True)
class CertificateData:
    """Everything needed to render one SKL, already resolved."""

    id: int
    nisn: str
    nis: str
    full_name: str
    birth_place: str
    birth_date: str
    parent_name: str
    class_name: str
    cert_number: str
    issue_date: str
    headmaster_name: str
    headmaster_nip: str
    school_name: str
    school_address: str
    city_name: str
    province_name: str
    academic_year: str
    major_name: str = DEFAULT_MAJOR_NAME
    cert_number_prefix: str = ""
    cert_before_student_data: str = ""
    cert_after_student_data: str = ""
    cert_regulation_text: str = ""
    cert_criteria_text: str = ""
    graduation_date: str = ""
    graduation_time: str = ""
    school_email: str = ""
    school_website: str = ""
    school_logo: str = ""
    ministry_logo: str = ""
    school_stamp: str = ""
    headmaster_signature: str = ""
    use_digital_signature: bool = False
    show_grades: bool = False
    grades: tuple[GradeEntry, ...] = field(default_factory=tuple)
    average_grade: float | None = None

    @property
    def certificate_number_line(self) -> str:
        return self.cert_number_prefix or self.cert_number or generate_certificate_number(self.id)

    @property
    def has_grade_table(self) -> bool:
        return bool(self.show_grades and self.grades)


def generate_certificate_number(student_id: int) -> str:
    return str(student_id).zfill(3)


def format_certificate_number(student_id: int, academic_year: str, prefix: str = "") -> str:
    """``<prefix or SKL>/<academic year, first slash as dash>/<padded id>``."""
    year = (academic_year or "").replace("/", "-", 1)
    return f"{prefix or 'SKL'}/{year}/{generate_certificate_number(student_id)}"


def average_of(grades: Iterable[GradeEntry]) -> float | None:
    """Arithmetic mean rounded half-up to two decimals; ``None`` for no grades.

    This is the only place an average is computed; renderers print
    ``CertificateData.average_grade`` as given.
    """
    values = [float(grade.value) for grade in grades]
    if not values:
        return None
    return math.floor(sum(values) / len(values) * 100 + 0.5) / 100


def grade_entries(rows: Iterable[Any]) -> tuple[GradeEntry, ...]:
    """Turn ``Grade`` rows (or ``{name, value, category}`` dicts) into entries."""
    entries = []
    for row in rows:
        if isinstance(row, GradeEntry):
            entries.append(row)
        elif isinstance(row, Mapping):
            entries.append(
                GradeEntry(
                    name=row["name"],
                    value=float(row["value"]),
                    category=row.get("category") or None,
                )
            )
        else:
            entries.append(
                GradeEntry(
                    name=row.subject_name,
                    value=float(row.value),
                    category=getattr(row, "category", None) or None,
                )
            )
    return tuple(entries)


def build_certificate_data(
    student: Any,
    settings: Mapping[str, Any],
    grades: Iterable[Any] = (),
    *,
    show_grades: bool = False,
    issue_date: date | str | None = None,
) -> CertificateData:
    """Merge a student row, the settings record and grades into one record."""
    entries = grade_entries(grades) if show_grades else ()
    if issue_date is None:
        issue_date = date.today()
    if isinstance(issue_date, date):
        issue_date = issue_date.isoformat()

    def setting(key: str) -> str:
        return settings.get(key) or ""

    return CertificateData(
        id=student.id,
        nisn=student.nisn,
        nis=student.nis,
        full_name=student.full_name,
        birth_place=student.birth_place,
        birth_date=student.birth_date,
        parent_name=student.parent_name,
        class_name=student.class_name,
        major_name=getattr(student, "major_name", None) or DEFAULT_MAJOR_NAME,
        cert_number=format_certificate_number(
            student.id, setting("academic_year"), setting("cert_number_prefix")
        ),
        cert_number_prefix=setting("cert_number_prefix"),
        cert_before_student_data=setting("cert_before_student_data"),
        cert_after_student_data=setting("cert_after_student_data"),
        cert_regulation_text=setting("cert_regulation_text"),
        cert_criteria_text=setting("cert_criteria_text"),
        issue_date=issue_date,
        graduation_date=setting("graduation_date") or issue_date,
        graduation_time=setting("graduation_time"),
        headmaster_name=setting("headmaster_name"),
        headmaster_nip=setting("headmaster_nip"),
        headmaster_signature=setting("headmaster_signature"),
        school_name=setting("school_name"),
        school_address=setting("school_address"),
        school_email=setting("school_email"),
        school_website=setting("school_website"),
        school_logo=setting("school_logo"),
        ministry_logo=setting("ministry_logo"),
        school_stamp=setting("school_stamp"),
        city_name=setting("city_name"),
        province_name=setting("province_name"),
        academic_year=setting("academic_year"),
        use_digital_signature=bool(settings.get("use_digital_signature")),
        show_grades=show_grades,
        grades=entries,
        average_grade=average_of(entries),
    )
