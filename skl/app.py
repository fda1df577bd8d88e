import logging
import os

from flask import Flask, jsonify, session
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from .models import Settings, Student, User  # noqa: E402
from .shared.cache import TTLCache  # noqa: E402


def create_app():
    app = Flask(__name__)
    app.secret_key = os.getenv("SECRET_KEY", "dev")

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    app.logger.setLevel(log_level)
    logging.getLogger("skl").setLevel(log_level)

    DB_USER = os.getenv("DB_USER", "skl")
    DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
    DB_HOST = os.getenv("DB_HOST", "db")
    DB_NAME = os.getenv("DB_NAME", "skl")
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}/{DB_NAME}",
    )

    app.config["SQLALCHEMY_DATABASE_URI"] = DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MAX_CONTENT_LENGTH"] = 10 * 1024 * 1024

    upload_root = os.getenv("UPLOAD_ROOT", "uploads")
    app.config["UPLOAD_ROOT"] = upload_root
    app.config["CERT_TMP_DIR"] = os.path.join(upload_root, "certificates")
    app.config["CERT_RENDER_TIMEOUT"] = float(os.getenv("CERT_RENDER_TIMEOUT", "30"))

    # Read-through caches; settings writes re-assign, verification changes invalidate.
    app.extensions["skl.settings_cache"] = TTLCache(
        float(os.getenv("SETTINGS_CACHE_TTL", "300")), name="settings"
    )
    app.extensions["skl.stats_cache"] = TTLCache(
        float(os.getenv("STATS_CACHE_TTL", "60")), name="stats"
    )

    db.init_app(app)

    @app.get("/health")
    def health():  # pragma: no cover - simple healthcheck
        return "OK", 200

    @app.get("/api/user")
    def current_user_info():
        user_id = session.get("user_id")
        user = db.session.get(User, user_id) if user_id else None
        if not user:
            return jsonify({"message": "Belum login"}), 401
        return jsonify(
            {
                "id": user.id,
                "username": user.username,
                "fullName": user.full_name,
                "role": user.role,
                "studentId": user.student_id,
            }
        )

    from .routes.certificates import bp as certificates_bp
    from .routes.settings import bp as settings_bp
    from .routes.students import bp as students_bp

    app.register_blueprint(certificates_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(students_bp)

    return app


def settings_cache() -> TTLCache:
    from flask import current_app

    return current_app.extensions["skl.settings_cache"]


def stats_cache() -> TTLCache:
    from flask import current_app

    return current_app.extensions["skl.stats_cache"]


def load_settings() -> dict:
    """Return the settings record as a dict, through the cache.

    A default row is created when the table is empty so the dashboard and the
    certificate routes always have something to merge.
    """
    cache = settings_cache()
    cached = cache.get()
    if cached is not None:
        return cached
    settings = Settings.get()
    if settings is None:
        settings = Settings.with_defaults()
        db.session.add(settings)
        db.session.commit()
        logging.getLogger("skl.settings").info("[SETTINGS] seeded defaults")
    values = settings.to_dict()
    cache.set(values)
    return values


def count_students_by_status() -> dict:
    cache = stats_cache()
    cached = cache.get()
    if cached is not None:
        return cached
    counts = dict(
        db.session.query(Student.status, db.func.count(Student.id))
        .group_by(Student.status)
        .all()
    )
    stats = {
        "totalStudents": sum(counts.values()),
        "verifiedStudents": counts.get("verified", 0),
        "pendingStudents": counts.get("pending", 0),
        "rejectedStudents": counts.get("rejected", 0),
    }
    cache.set(stats)
    return stats
