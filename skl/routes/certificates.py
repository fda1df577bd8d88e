from __future__ import annotations

import os
import time
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file

from ..app import db, load_settings
from ..models import Student
from ..services.certificates_snapshot import (
    SNAPSHOT_FORMATS,
    SnapshotSourceError,
    export_snapshot,
    snapshot_filename,
)
from ..shared.certificate_data import build_certificate_data
from ..shared.certificate_document import compose_document
from ..shared.certificates import (
    CertificateTimeoutError,
    certificate_download_name,
    generate_certificate_file,
    run_with_timeout,
)
from ..shared.certificates_layout import layout_document
from ..shared.rbac import login_required
from ..shared.storage import ensure_dir, remove_quietly

bp = Blueprint("certificates", __name__, url_prefix="/api/certificates")

_TRUE_VALUES = ("1", "true", "yes", "on")


def _show_grades() -> bool:
    return request.args.get("showGrades", "false").strip().lower() in _TRUE_VALUES


def _tmp_path(student_id: int, ext: str) -> str:
    tmp_dir = os.path.abspath(current_app.config["CERT_TMP_DIR"])
    ensure_dir(tmp_dir)
    stamp = int(time.time() * 1000)
    return os.path.join(tmp_dir, f"certificate_{student_id}_{stamp}.{ext}")


def _send_and_discard(path: str, mimetype: str, download_name: str):
    """Stream a generated file as an attachment; the file is gone before the reply."""
    try:
        with open(path, "rb") as fh:
            payload = BytesIO(fh.read())
    finally:
        remove_quietly(path)
    return send_file(
        payload,
        mimetype=mimetype,
        as_attachment=True,
        download_name=download_name,
        max_age=0,
    )


def _certificate_data_for(raw_id: str, current_user):
    """Resolve the request to a ``CertificateData`` or an error response."""
    try:
        student_id = int(raw_id)
    except ValueError:
        return None, (jsonify({"message": "ID siswa tidak valid"}), 400)
    if current_user.role == "siswa" and current_user.student_id != student_id:
        return None, (jsonify({"message": "Akses ditolak"}), 403)
    student = db.session.get(Student, student_id)
    if not student:
        return None, (jsonify({"message": "Siswa tidak ditemukan"}), 404)
    if student.status != "verified":
        return None, (jsonify({"message": "Siswa belum diverifikasi"}), 403)
    data = build_certificate_data(
        student, load_settings(), student.grades, show_grades=_show_grades()
    )
    return data, None


@bp.get("/<student_id>")
@login_required
def download(student_id, current_user):
    data, error = _certificate_data_for(student_id, current_user)
    if error:
        return error

    output_path = _tmp_path(data.id, "pdf")
    try:
        generate_certificate_file(
            data,
            output_path,
            asset_root=current_app.config["UPLOAD_ROOT"],
            timeout=current_app.config["CERT_RENDER_TIMEOUT"],
        )
    except CertificateTimeoutError:
        remove_quietly(output_path)
        current_app.logger.exception("[CERT-FAIL] student=%s timed out", data.id)
        return jsonify({"message": "Pembuatan sertifikat melebihi batas waktu"}), 504
    except Exception:
        remove_quietly(output_path)
        current_app.logger.exception("[CERT-FAIL] student=%s", data.id)
        return jsonify({"message": "Gagal membuat sertifikat"}), 500

    return _send_and_discard(
        output_path, "application/pdf", certificate_download_name(data)
    )


@bp.get("/<student_id>/snapshot")
@login_required
def snapshot(student_id, current_user):
    fmt = request.args.get("format", "png").strip().lower()
    if fmt not in SNAPSHOT_FORMATS:
        return jsonify({"message": "Format tidak didukung"}), 400
    data, error = _certificate_data_for(student_id, current_user)
    if error:
        return error

    region = request.args.get("region", "certificate")
    output_path = _tmp_path(data.id, fmt)
    try:
        layout = layout_document(compose_document(data))
        run_with_timeout(
            export_snapshot,
            output_path,
            current_app.config["CERT_RENDER_TIMEOUT"],
            layout,
            output_path,
            region=region,
            fmt=fmt,
            asset_root=current_app.config["UPLOAD_ROOT"],
        )
    except SnapshotSourceError:
        return jsonify({"message": "Bagian sertifikat tidak ditemukan"}), 404
    except CertificateTimeoutError:
        current_app.logger.exception("[CERT-FAIL] snapshot student=%s timed out", data.id)
        return jsonify({"message": "Pembuatan sertifikat melebihi batas waktu"}), 504
    except Exception:
        current_app.logger.exception("[CERT-FAIL] snapshot student=%s", data.id)
        return jsonify({"message": "Gagal membuat sertifikat"}), 500

    mimetype = "application/pdf" if fmt == "pdf" else "image/png"
    return _send_and_discard(output_path, mimetype, snapshot_filename(data, fmt))
