from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .certificate_data import GradeEntry

COLUMN_WIDTHS: tuple[float, float, float] = (60.0, 300.0, 100.0)
ROW_HEIGHT = 25.0
HEADER_CELLS = ("No", "Mata Pelajaran", "Nilai")
AVERAGE_LABEL = "RATA RATA"

# (code, label, start, stop) - positional slices used when grades carry no category
GRADE_GROUPS: tuple[tuple[str, str, int, int | None], ...] = (
    ("A", "Pelajaran Umum", 0, 6),
    ("B", "Keterampilan", 6, 9),
    ("C", "Peminatan", 9, 14),
    ("D", "Lintas Minat", 14, None),
)

ROW_HEADER = "header"
ROW_GROUP = "group"
ROW_GRADE = "grade"
ROW_AVERAGE = "average"


@dataclass(frozen=True)
class TableRow:
    kind: str
    cells: tuple[str, ...]
    spans: tuple[int, ...] = (1, 1, 1)
    bold: bool = False

    @property
    def number(self) -> int | None:
        if self.kind != ROW_GRADE:
            return None
        return int(self.cells[0])


def fmt_score(value: float | None) -> str:
    if value is None:
        return "0.00"
    return f"{float(value):.2f}"


def group_grades(
    grades: Sequence[GradeEntry],
) -> list[tuple[str, str, list[GradeEntry]]]:
    """Split grades into the A-D table groups.

    When every grade names its category the categories are used (keeping
    input order inside each group); otherwise the fixed positional slices
    apply. Groups A-C are always returned, D only when it has grades.
    """
    explicit = bool(grades) and all(grade.category for grade in grades)
    groups: list[tuple[str, str, list[GradeEntry]]] = []
    for code, label, start, stop in GRADE_GROUPS:
        if explicit:
            members = [grade for grade in grades if grade.category == code]
        else:
            members = list(grades[start:stop])
        if code == "D" and not members:
            continue
        groups.append((code, label, members))
    return groups


def build_grade_rows(
    grades: Sequence[GradeEntry], average_grade: float | None
) -> list[TableRow]:
    rows = [TableRow(ROW_HEADER, HEADER_CELLS, bold=True)]
    number = 0
    for code, label, members in group_grades(grades):
        rows.append(TableRow(ROW_GROUP, (code, label, ""), bold=True))
        for grade in members:
            number += 1
            rows.append(
                TableRow(ROW_GRADE, (str(number), grade.name, fmt_score(grade.value)))
            )
    rows.append(
        TableRow(
            ROW_AVERAGE,
            (AVERAGE_LABEL, fmt_score(average_grade)),
            spans=(2, 1),
            bold=True,
        )
    )
    return rows
