from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

from .certificate_data import CertificateData
from .certificate_text import (
    CRITERIA_HEADING,
    DEFAULT_AFTER_STUDENT_TEXT,
    DEFAULT_BEFORE_STUDENT_TEXT,
    DEFAULT_CLOSING_TEXT,
    DEFAULT_REGULATION_TEXT,
    criteria_lines,
    default_criteria_lines,
    text_or_default,
)
from .grade_table import TableRow, build_grade_rows
from .time import fmt_long_date

TITLE_TEXT = "SURAT KETERANGAN"
STAMP_TEXT = "LULUS"
GRADE_TABLE_INTRO = "dengan nilai sebagai berikut :"
SIGNATURE_ROLE = "Kepala,"


@dataclass(frozen=True)
class Letterhead:
    province_line: str
    agency_line: str
    school_line: str
    address_line: str
    contact_line: str = ""
    left_logo: str = ""
    right_logo: str = ""


@dataclass(frozen=True)
class Rule:
    width: float = 2.0


@dataclass(frozen=True)
class Title:
    text: str
    number_line: str


@dataclass(frozen=True)
class Paragraph:
    text: str
    font_size: float = 11.0
    align: str = "justify"
    space_after: float = 20.0
    role: str = ""


@dataclass(frozen=True)
class CriteriaList:
    heading: str
    lines: tuple[str, ...]
    is_default: bool = False


@dataclass(frozen=True)
class KeyValueRow:
    label: str
    value: str
    bold: bool = False


@dataclass(frozen=True)
class KeyValueBlock:
    rows: tuple[KeyValueRow, ...]


@dataclass(frozen=True)
class Stamp:
    text: str = STAMP_TEXT


@dataclass(frozen=True)
class GradeTable:
    intro: str
    rows: tuple[TableRow, ...]
    grade_count: int


@dataclass(frozen=True)
class Signature:
    place_date: str
    role_label: str
    name: str
    nip: str
    signature_image: str = ""
    stamp_image: str = ""
    qr_payload: str = ""


Block = Union[
    Letterhead,
    Rule,
    Title,
    Paragraph,
    CriteriaList,
    KeyValueBlock,
    Stamp,
    GradeTable,
    Signature,
]


@dataclass(frozen=True)
class CertificateDocument:
    title: str
    author: str
    subject: str
    keywords: str
    blocks: tuple[Block, ...]

    def find(self, kind: type) -> list:
        return [block for block in self.blocks if isinstance(block, kind)]


def _contact_line(data: CertificateData) -> str:
    parts = []
    if data.school_email:
        parts.append(f"E-mail: {data.school_email}")
    if data.school_website:
        parts.append(f"Website: {data.school_website}")
    return " - ".join(parts)


def qr_payload(data: CertificateData) -> str:
    """Identity summary encoded in the TTE (digital signature) QR code."""
    return json.dumps(
        {
            "nisn": data.nisn,
            "nama": data.full_name,
            "sekolah": data.school_name,
            "jurusan": data.major_name,
            "tanggalLulus": fmt_long_date(data.graduation_date),
            "tanggalTerbit": fmt_long_date(data.issue_date),
            "nomorSurat": data.certificate_number_line,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


def compose_document(data: CertificateData) -> CertificateDocument:
    """Build the renderer-independent block tree for one certificate."""
    custom_criteria = criteria_lines(data.cert_criteria_text)
    if custom_criteria:
        criteria = CriteriaList(CRITERIA_HEADING, tuple(custom_criteria))
    else:
        criteria = CriteriaList(
            CRITERIA_HEADING,
            tuple(
                default_criteria_lines(
                    data.school_name, data.province_name, data.academic_year
                )
            ),
            is_default=True,
        )

    blocks: list[Block] = [
        Letterhead(
            province_line=f"PEMERINTAH PROVINSI {data.province_name.upper()}",
            agency_line="DINAS PENDIDIKAN",
            school_line=data.school_name.upper(),
            address_line=f"Jalan: {data.school_address}",
            contact_line=_contact_line(data),
            left_logo=data.ministry_logo,
            right_logo=data.school_logo,
        ),
        Rule(),
        Title(TITLE_TEXT, f"No. {data.certificate_number_line}"),
        Paragraph(
            text_or_default(data.cert_regulation_text, DEFAULT_REGULATION_TEXT),
            role="regulation",
        ),
        criteria,
        Paragraph(
            text_or_default(data.cert_before_student_data, DEFAULT_BEFORE_STUDENT_TEXT),
            space_after=15.0,
            role="before_student",
        ),
        KeyValueBlock(
            (
                KeyValueRow("Nama Siswa", data.full_name, bold=True),
                KeyValueRow(
                    "Tempat, Tanggal Lahir",
                    f"{data.birth_place}, {fmt_long_date(data.birth_date)}",
                ),
                KeyValueRow("NIS / NISN", f"{data.nis} / {data.nisn}"),
                KeyValueRow("Jurusan", data.major_name or "MIPA"),
                KeyValueRow("Orang Tua / Wali", data.parent_name),
            )
        ),
        Paragraph(
            text_or_default(data.cert_after_student_data, DEFAULT_AFTER_STUDENT_TEXT),
            role="after_student",
        ),
        Stamp(),
    ]

    # gate on actual grades, not just the flag
    if data.has_grade_table:
        blocks.append(
            GradeTable(
                intro=GRADE_TABLE_INTRO,
                rows=tuple(build_grade_rows(data.grades, data.average_grade)),
                grade_count=len(data.grades),
            )
        )

    blocks.append(
        Paragraph(DEFAULT_CLOSING_TEXT, font_size=12.0, space_after=0.0, role="closing")
    )
    blocks.append(
        Signature(
            place_date=f"{data.city_name}, {fmt_long_date(data.issue_date)}",
            role_label=SIGNATURE_ROLE,
            name=data.headmaster_name,
            nip=f"NIP. {data.headmaster_nip}",
            signature_image="" if data.use_digital_signature else data.headmaster_signature,
            stamp_image="" if data.use_digital_signature else data.school_stamp,
            qr_payload=qr_payload(data) if data.use_digital_signature else "",
        )
    )

    return CertificateDocument(
        title=f"Surat Keterangan Lulus - {data.full_name}",
        author=data.school_name,
        subject="Surat Keterangan Lulus",
        keywords="SKL, surat keterangan lulus, ijazah",
        blocks=tuple(blocks),
    )
