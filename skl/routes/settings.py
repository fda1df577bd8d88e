from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from ..app import db, load_settings, settings_cache
from ..models import Settings
from ..shared.rbac import login_required, roles_required

bp = Blueprint("settings", __name__, url_prefix="/api/settings")

logger = logging.getLogger("skl.settings")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_API_NAMES = {field: _camel(field) for field in Settings.EDITABLE_FIELDS}


def serialize_settings(values: dict) -> dict:
    payload = {"id": values.get("id", 1)}
    for field, api_name in _API_NAMES.items():
        payload[api_name] = values.get(field)
    return payload


@bp.get("")
@login_required
def get_settings(current_user):
    return jsonify(serialize_settings(load_settings()))


@bp.put("")
@roles_required("admin")
def update_settings(current_user):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"message": "Data pengaturan tidak valid"}), 400

    updates = {}
    for field, api_name in _API_NAMES.items():
        if api_name in body:
            value = body[api_name]
        elif field in body:
            value = body[field]
        else:
            continue
        if field == "use_digital_signature":
            if not isinstance(value, bool):
                return jsonify({"message": f"{api_name} harus berupa boolean"}), 400
        elif value is None:
            value = ""
        elif not isinstance(value, str):
            return jsonify({"message": f"{api_name} harus berupa teks"}), 400
        updates[field] = value

    settings = Settings.get()
    if settings is None:
        settings = Settings.with_defaults()
        db.session.add(settings)
    for field, value in updates.items():
        setattr(settings, field, value)
    changed = list(updates)

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[SETTINGS] update failed")
        return jsonify({"message": "Gagal menyimpan pengaturan"}), 500

    values = settings.to_dict()
    settings_cache().set(values)
    logger.info(
        "[SETTINGS] updated by user=%s fields=%s", current_user.id, ",".join(changed)
    )
    return jsonify(serialize_settings(values))
