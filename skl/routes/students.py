from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..app import count_students_by_status, db, stats_cache
from ..models import Student
from ..shared.rbac import roles_required
from ..shared.time import now_utc

bp = Blueprint("students", __name__, url_prefix="/api")

_VERIFY_STATUSES = ("verified", "rejected")


@bp.get("/dashboard/stats")
@roles_required("admin", "guru")
def dashboard_stats(current_user):
    return jsonify(count_students_by_status())


@bp.post("/students/<int:student_id>/verify")
@roles_required("admin", "guru")
def verify_student(student_id: int, current_user):
    student = db.session.get(Student, student_id)
    if not student:
        return jsonify({"message": "Siswa tidak ditemukan"}), 404

    body = request.get_json(silent=True) or {}
    status = (body.get("status") or "").strip().lower()
    if status not in _VERIFY_STATUSES:
        return jsonify({"message": "Status verifikasi tidak valid"}), 400

    student.status = status
    student.verified_by = current_user.id
    student.verification_date = now_utc()
    student.verification_notes = body.get("verificationNotes") or body.get("notes")
    db.session.commit()
    stats_cache().invalidate()
    current_app.logger.info(
        "[VERIFY] student=%s status=%s by=%s", student.id, status, current_user.id
    )
    return jsonify(
        {
            "id": student.id,
            "status": student.status,
            "verifiedBy": student.verified_by,
            "verificationDate": student.verification_date.isoformat(),
            "verificationNotes": student.verification_notes,
        }
    )
