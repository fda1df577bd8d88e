from skl.app import create_app, db, load_settings
import os

from flask_migrate import Migrate
from flask.cli import FlaskGroup
import click
from flask import current_app
from skl.models import ROLES, Student, User
from skl.services.certificates_snapshot import export_snapshot, snapshot_filename
from skl.shared.certificate_data import build_certificate_data
from skl.shared.certificate_document import compose_document
from skl.shared.certificates import certificate_download_name, generate_certificate_pdf
from skl.shared.certificates_layout import layout_document


migrate = Migrate()


def create_skl_app():
    app = create_app()
    migrate.init_app(app, db)
    return app


cli = FlaskGroup(create_app=create_skl_app)


def _certificate_data(student_id: int, with_grades: bool):
    student = db.session.get(Student, student_id)
    if not student:
        return None
    return build_certificate_data(
        student, load_settings(), student.grades, show_grades=with_grades
    )


@cli.command("gen_cert")
@click.option("--student", "student_id", required=True, type=int)
@click.option("--with-grades", is_flag=True, help="Include the grade table")
@click.option("--out", "out_path", default=None, help="Output PDF path")
def gen_cert(student_id: int, with_grades: bool, out_path: str | None):
    """Generate the SKL PDF for a student."""
    data = _certificate_data(student_id, with_grades)
    if data is None:
        click.echo("Not found", err=True)
        return
    path = out_path or os.path.join(
        current_app.config["CERT_TMP_DIR"], certificate_download_name(data)
    )
    digest = generate_certificate_pdf(
        data, path, asset_root=current_app.config["UPLOAD_ROOT"]
    )
    click.echo(f"{path} sha256={digest}")


@cli.command("snapshot")
@click.option("--student", "student_id", required=True, type=int)
@click.option("--with-grades", is_flag=True, help="Include the grade table")
@click.option(
    "--format", "fmt", type=click.Choice(["png", "pdf"]), default="png", show_default=True
)
@click.option("--out", "out_dir", default=".", show_default=True, help="Output directory")
def snapshot(student_id: int, with_grades: bool, fmt: str, out_dir: str):
    """Rasterize the certificate to a PNG or an image-only PDF."""
    data = _certificate_data(student_id, with_grades)
    if data is None:
        click.echo("Not found", err=True)
        return
    path = os.path.join(out_dir, snapshot_filename(data, fmt))
    result = export_snapshot(
        layout_document(compose_document(data)),
        path,
        fmt=fmt,
        progress=lambda step, percent: click.echo(f"[{percent:3d}%] {step}"),
        asset_root=current_app.config["UPLOAD_ROOT"],
    )
    click.echo(f"{result.path} {result.width_px}x{result.height_px}")


@cli.command("create_user")
@click.option("--username", required=True)
@click.option("--password", required=True)
@click.option("--role", type=click.Choice(ROLES), required=True)
@click.option("--full-name", "full_name", default="")
@click.option("--student", "student_id", type=int, default=None)
def create_user(username: str, password: str, role: str, full_name: str, student_id):
    """Create a login account; siswa accounts may be linked to a student."""
    if db.session.query(User.id).filter_by(username=username).first():
        click.echo("Username already exists", err=True)
        return
    if student_id is not None and not db.session.get(Student, student_id):
        click.echo("Student not found", err=True)
        return
    user = User(
        username=username,
        full_name=full_name or username,
        role=role,
        student_id=student_id,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("[USER] created %s role=%s", username, role)
    click.echo(f"user_id={user.id}")


if __name__ == "__main__":
    cli()
