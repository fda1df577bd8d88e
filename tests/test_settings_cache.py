import pytest

from skl.app import db, load_settings, settings_cache
from skl.models import Settings, Student, User
from skl.shared.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _user(role, username=None):
    user = User(username=username or role, full_name=role.title(), role=role)
    user.set_password("pw")
    db.session.add(user)
    db.session.commit()
    return user.id


def _login(client, user_id):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id


def _student(nisn, status="pending"):
    student = Student(
        nisn=nisn,
        nis=nisn[-4:],
        full_name=f"Siswa {nisn}",
        birth_place="Bandung",
        birth_date="2006-01-01",
        parent_name="Orang Tua",
        class_name="XII",
        status=status,
    )
    db.session.add(student)
    db.session.commit()
    return student.id


def test_ttl_cache_expiry():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    assert cache.get() is None
    cache.set({"a": 1})
    clock.now += 59
    assert cache.get() == {"a": 1}
    clock.now += 1
    assert cache.get() is None
    cache.set("x")
    cache.invalidate()
    assert cache.get() is None


def test_settings_defaults_created_once(app):
    assert Settings.get() is None
    values = load_settings()
    assert values["school_name"] == "YOUR SCHOOL NAME"
    assert values["use_digital_signature"] is False
    assert db.session.query(Settings).count() == 1
    assert load_settings() is values


def test_settings_get_and_put(app, client):
    admin_id = _user("admin")
    guru_id = _user("guru")
    _login(client, guru_id)
    resp = client.get("/api/settings")
    assert resp.status_code == 200
    assert resp.get_json()["schoolName"] == "YOUR SCHOOL NAME"

    resp = client.put("/api/settings", json={"schoolName": "SMA Negeri 2"})
    assert resp.status_code == 403

    _login(client, admin_id)
    resp = client.put(
        "/api/settings",
        json={
            "schoolName": "SMA Negeri 2",
            "certCriteriaText": "<p>Lulus</p>",
            "useDigitalSignature": True,
        },
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["schoolName"] == "SMA Negeri 2"
    assert body["useDigitalSignature"] is True
    # write re-assigns the cached value
    assert settings_cache().get()["school_name"] == "SMA Negeri 2"
    assert client.get("/api/settings").get_json()["certCriteriaText"] == "<p>Lulus</p>"


def test_settings_put_rejects_non_object(app, client):
    _login(client, _user("admin"))
    resp = client.put("/api/settings", json=["nope"])
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "payload",
    [
        {"useDigitalSignature": "false"},
        {"useDigitalSignature": 1},
        {"schoolName": ["SMA"]},
        {"schoolName": "SMA Negeri 3", "academicYear": {"tahun": 2024}},
    ],
)
def test_settings_put_rejects_wrong_types(app, client, payload):
    _login(client, _user("admin"))
    resp = client.put("/api/settings", json=payload)
    assert resp.status_code == 400
    values = client.get("/api/settings").get_json()
    assert values["useDigitalSignature"] is False
    assert values["schoolName"] == "YOUR SCHOOL NAME"
    assert Settings.get().school_name != "SMA Negeri 3"


def test_settings_put_null_clears_text(app, client):
    _login(client, _user("admin"))
    resp = client.put("/api/settings", json={"schoolEmail": None})
    assert resp.status_code == 200
    assert resp.get_json()["schoolEmail"] == ""


def test_settings_cache_expires(app):
    clock = FakeClock()
    app.extensions["skl.settings_cache"] = TTLCache(300, clock=clock)
    load_settings()
    settings = Settings.get()
    settings.school_name = "Diubah Langsung"
    db.session.commit()
    assert load_settings()["school_name"] == "YOUR SCHOOL NAME"
    clock.now += 301
    assert load_settings()["school_name"] == "Diubah Langsung"


def test_dashboard_stats_cached_and_invalidated(app, client):
    clock = FakeClock()
    app.extensions["skl.stats_cache"] = TTLCache(60, clock=clock)
    guru_id = _user("guru")
    first = _student("0060000001")
    _student("0060000002", status="verified")
    _login(client, guru_id)

    stats = client.get("/api/dashboard/stats").get_json()
    assert stats == {
        "totalStudents": 2,
        "verifiedStudents": 1,
        "pendingStudents": 1,
        "rejectedStudents": 0,
    }

    _student("0060000003")
    assert client.get("/api/dashboard/stats").get_json()["totalStudents"] == 2
    clock.now += 61
    assert client.get("/api/dashboard/stats").get_json()["totalStudents"] == 3

    resp = client.post(
        f"/api/students/{first}/verify",
        json={"status": "rejected", "verificationNotes": "Data tidak lengkap"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "rejected"
    stats = client.get("/api/dashboard/stats").get_json()
    assert stats["rejectedStudents"] == 1
    assert stats["pendingStudents"] == 1


def test_verify_requires_staff(app, client):
    student_id = _student("0060000009")
    _login(client, _user("siswa", "murid"))
    resp = client.post(f"/api/students/{student_id}/verify", json={"status": "verified"})
    assert resp.status_code == 403
    assert client.get("/api/dashboard/stats").status_code == 403


def test_verify_validates_status(app, client):
    student_id = _student("0060000010")
    _login(client, _user("admin"))
    resp = client.post(f"/api/students/{student_id}/verify", json={"status": "maybe"})
    assert resp.status_code == 400
    assert client.post("/api/students/999/verify", json={"status": "verified"}).status_code == 404


def test_current_user_endpoint(app, client):
    assert client.get("/api/user").status_code == 401
    _login(client, _user("guru"))
    assert client.get("/api/user").get_json()["role"] == "guru"
