import os

import pytest

from skl.app import db
from skl.models import Grade, Student, User
from manage import create_user, gen_cert, snapshot


@pytest.fixture
def cli_app(app):
    app.cli.add_command(gen_cert)
    app.cli.add_command(snapshot)
    app.cli.add_command(create_user)
    return app


def _student():
    student = Student(
        nisn="0061234567",
        nis="2021001",
        full_name="Budi Santoso",
        birth_place="Bandung",
        birth_date="2006-03-14",
        parent_name="Sutrisno",
        class_name="XII MIPA 1",
        status="verified",
    )
    student.grades.append(Grade(subject_name="Matematika", value=90, category="A"))
    db.session.add(student)
    db.session.commit()
    return student.id


def test_gen_cert_writes_pdf(cli_app, tmp_path):
    student_id = _student()
    out = tmp_path / "budi.pdf"
    runner = cli_app.test_cli_runner()
    res = runner.invoke(
        args=["gen_cert", "--student", str(student_id), "--with-grades", "--out", str(out)]
    )
    assert res.exit_code == 0, res.output
    assert "sha256=" in res.output
    assert out.read_bytes().startswith(b"%PDF")


def test_gen_cert_unknown_student(cli_app):
    runner = cli_app.test_cli_runner()
    res = runner.invoke(args=["gen_cert", "--student", "404"])
    assert "Not found" in res.output


def test_snapshot_reports_progress(cli_app, tmp_path):
    student_id = _student()
    runner = cli_app.test_cli_runner()
    res = runner.invoke(
        args=["snapshot", "--student", str(student_id), "--out", str(tmp_path)]
    )
    assert res.exit_code == 0, res.output
    assert "[100%]" in res.output
    assert os.path.exists(tmp_path / "SKL_Tanpa_Nilai_0061234567.png")


def test_create_user(cli_app):
    student_id = _student()
    runner = cli_app.test_cli_runner()
    res = runner.invoke(
        args=[
            "create_user",
            "--username",
            "budi",
            "--password",
            "rahasia",
            "--role",
            "siswa",
            "--student",
            str(student_id),
        ]
    )
    assert res.exit_code == 0, res.output
    user = User.query.filter_by(username="budi").one()
    assert user.student_id == student_id
    assert user.check_password("rahasia")
    assert not user.check_password("salah")

    res = runner.invoke(
        args=["create_user", "--username", "budi", "--password", "x", "--role", "guru"]
    )
    assert "already exists" in res.output
