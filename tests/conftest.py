import os
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from skl.app import create_app, db
from skl.shared.certificate_data import CertificateData, GradeEntry, average_of


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "slow" in item.keywords or "quarantine" in item.keywords:
            continue
        item.add_marker("full")
        if "no_smoke" in item.keywords:
            continue
        item.add_marker("smoke")


@pytest.fixture
def app(tmp_path):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ["UPLOAD_ROOT"] = str(tmp_path / "uploads")
    application = create_app()
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


def grade_list(count: int) -> tuple[GradeEntry, ...]:
    return tuple(
        GradeEntry(f"Mata Pelajaran {i + 1}", 80 + (i % 10)) for i in range(count)
    )


@pytest.fixture
def make_data():
    """Factory for a fully populated ``CertificateData``."""

    def factory(**overrides) -> CertificateData:
        grades = tuple(overrides.pop("grades", ()))
        values = dict(
            id=7,
            nisn="0061234567",
            nis="2021001",
            full_name="Budi Santoso",
            birth_place="Bandung",
            birth_date="2006-03-14",
            parent_name="Sutrisno",
            class_name="XII MIPA 1",
            cert_number="SKL/2023-2024/007",
            issue_date="2024-05-04",
            headmaster_name="Dra. Siti Aminah, M.Pd.",
            headmaster_nip="196801011990032001",
            school_name="SMA Negeri 1 Contoh",
            school_address="Jl. Merdeka No. 1",
            city_name="Bandung",
            province_name="Jawa Barat",
            academic_year="2023/2024",
            show_grades=bool(grades),
            grades=grades,
            average_grade=average_of(grades),
        )
        values.update(overrides)
        return CertificateData(**values)

    return factory
