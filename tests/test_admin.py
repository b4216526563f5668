import pytest

from conftest import auth_headers, make_job, register_and_verify, save_profile

from backend.careers.models.application import Application
from backend.careers.models.candidate import Candidate
from backend.careers.models.profile import Profile
from backend.careers.services.admin import create_admin
from backend.careers.utils.error_handlers import ValidationError
from backend.careers.utils.security import hash_password, verify_password


def _login(client, db_session) -> str:
    create_admin(db_session, "principal", "correct-horse")
    r = client.post("/api/admin/login", json={"username": "principal", "password": "correct-horse"})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def _candidate_with_application(
    client, outbox, db_session, email: str, *,
    full_name: str = "Ayesha Khan", national_id: str = "35202-1234567-1", job=None,
) -> tuple[str, dict]:
    token = register_and_verify(client, outbox, email)
    profile = save_profile(client, token, fullName=full_name, nationalId=national_id).json()["profile"]
    job = job or make_job(db_session)
    r = client.post(
        f"/api/public/apply/{job.id}",
        data={"fullName": full_name, "phone": "+92 300 1234567", "cvPath": profile["resumePath"]},
        headers=auth_headers(token),
    )
    assert r.status_code == 200, r.text
    return token, r.json()["application"]


def test_admin_login_rejects_bad_password(client, db_session):
    create_admin(db_session, "principal", "correct-horse")
    r = client.post("/api/admin/login", json={"username": "principal", "password": "wrong-horse"})
    assert r.status_code == 400, r.text
    assert r.json()["msg"] == "Invalid Credentials"


def test_admin_password_is_hashed(db_session):
    admin = create_admin(db_session, "hashed", "correct-horse")
    assert admin.password != "correct-horse"
    assert admin.password.startswith("$2")


def test_hash_password_enforces_admin_password_rules(db_session):
    with pytest.raises(ValidationError, match="at least 8 characters"):
        hash_password("short")
    # 40 characters but 80 bytes once encoded.
    with pytest.raises(ValidationError, match="72 bytes"):
        hash_password("é" * 40)
    with pytest.raises(ValidationError):
        create_admin(db_session, "weak", "short")
    assert verify_password("correct-horse", "not-a-bcrypt-hash") is False


def test_admin_routes_require_admin_token(client, outbox, db_session):
    r = client.get("/api/admin/candidate/1")
    assert r.status_code == 401, r.text
    assert r.json()["msg"] == "No token, authorization denied"

    # A candidate session is not an admin token.
    token = register_and_verify(client, outbox, "notadmin@example.com")
    r = client.get("/api/admin/candidate/1", headers=auth_headers(token))
    assert r.status_code == 401, r.text
    assert r.json()["msg"] == "Token is not valid"


def test_update_application_status(client, outbox, db_session):
    _, application = _candidate_with_application(client, outbox, db_session, "status@example.com")
    admin = _login(client, db_session)

    r = client.put(
        f"/api/admin/application/{application['id']}/status",
        json={"status": "Reviewed"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "Reviewed"

    r = client.put(
        f"/api/admin/application/{application['id']}/status",
        json={"status": "Hired"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 400, r.text
    assert r.json()["msg"] == "Invalid status"


def test_unknown_application(client, db_session):
    admin = _login(client, db_session)
    r = client.delete("/api/admin/application/404", headers=auth_headers(admin))
    assert r.status_code == 404, r.text


def test_candidate_detail(client, outbox, db_session):
    _, application = _candidate_with_application(client, outbox, db_session, "detail@example.com")
    admin = _login(client, db_session)

    r = client.get(f"/api/admin/candidate/{application['candidateId']}", headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["email"] == "detail@example.com"
    assert body["emailVerified"] is True
    assert body["applicationCount"] == 1
    assert body["profile"]["fullName"] == "Ayesha Khan"


def test_delete_candidate_removes_profile_and_applications(client, outbox, db_session):
    token, application = _candidate_with_application(client, outbox, db_session, "gone@example.com")
    admin = _login(client, db_session)

    r = client.delete(f"/api/admin/candidate/{application['candidateId']}", headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    assert r.json()["deletedCandidate"]["email"] == "gone@example.com"

    db_session.expire_all()
    assert db_session.query(Candidate).count() == 0
    assert db_session.query(Profile).count() == 0
    assert db_session.query(Application).count() == 0

    # The old session no longer resolves to anyone.
    r = client.get("/api/candidate/check-auth", headers=auth_headers(token))
    assert r.status_code == 401, r.text

    # The address can register again from scratch.
    r = client.post("/api/candidate/register", json={"email": "gone@example.com"})
    assert r.status_code == 200, r.text


def test_list_applications_paginates_and_filters(client, outbox, db_session):
    teaching = make_job(db_session, title="Primary Teacher")
    library = make_job(db_session, title="Librarian")
    _candidate_with_application(client, outbox, db_session, "ayesha@example.com", job=teaching)
    _candidate_with_application(
        client, outbox, db_session, "bilal@example.com",
        full_name="Bilal Ahmed", national_id="35202-7654321-9", job=teaching,
    )
    _, sana = _candidate_with_application(
        client, outbox, db_session, "sana@example.com",
        full_name="Sana Malik", national_id="35202-1111111-1", job=library,
    )
    admin = _login(client, db_session)
    client.put(f"/api/admin/application/{sana['id']}/status", json={"status": "Reviewed"}, headers=auth_headers(admin))

    r = client.get("/api/admin/applications", params={"page": 1, "limit": 2}, headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["totalApplications"] == 3
    assert body["totalPages"] == 2
    assert body["currentPage"] == 1
    # Newest first.
    assert [a["email"] for a in body["applications"]] == ["sana@example.com", "bilal@example.com"]
    assert body["applications"][0]["jobTitle"] == "Librarian"
    assert body["applications"][0]["profile"]["fullName"] == "Sana Malik"

    r = client.get("/api/admin/applications", params={"page": 2, "limit": 2}, headers=auth_headers(admin))
    assert [a["email"] for a in r.json()["applications"]] == ["ayesha@example.com"]

    r = client.get("/api/admin/applications", params={"search": "BILAL"}, headers=auth_headers(admin))
    assert [a["fullName"] for a in r.json()["applications"]] == ["Bilal Ahmed"]

    r = client.get("/api/admin/applications", params={"search": "sana@"}, headers=auth_headers(admin))
    assert r.json()["totalApplications"] == 1

    r = client.get("/api/admin/applications", params={"status": "Reviewed"}, headers=auth_headers(admin))
    assert [a["id"] for a in r.json()["applications"]] == [sana["id"]]

    r = client.get("/api/admin/applications", params={"status": "All", "jobId": "All"}, headers=auth_headers(admin))
    assert r.json()["totalApplications"] == 3

    r = client.get("/api/admin/applications", params={"jobId": teaching.id}, headers=auth_headers(admin))
    assert r.json()["totalApplications"] == 2

    r = client.get("/api/admin/applications", params={"search": "%"}, headers=auth_headers(admin))
    assert r.json()["totalApplications"] == 0


def test_list_applications_for_job(client, outbox, db_session):
    job = make_job(db_session)
    _candidate_with_application(client, outbox, db_session, "first@example.com", job=job)
    _candidate_with_application(
        client, outbox, db_session, "second@example.com", national_id="35202-7654321-9", job=job,
    )
    other = make_job(db_session, title="Librarian")
    admin = _login(client, db_session)

    r = client.get(f"/api/admin/applications/{job.id}", headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    rows = r.json()
    assert [a["email"] for a in rows] == ["second@example.com", "first@example.com"]
    assert rows[0]["profile"]["nationalId"] == "35202-7654321-9"

    r = client.get(f"/api/admin/applications/{other.id}", headers=auth_headers(admin))
    assert r.json() == []


def test_list_candidates(client, outbox, db_session):
    _candidate_with_application(client, outbox, db_session, "applied@example.com")
    register_and_verify(client, outbox, "browsing@example.com")
    admin = _login(client, db_session)

    r = client.get("/api/admin/candidates", headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    rows = {row["email"]: row for row in r.json()}
    assert [row["email"] for row in r.json()] == ["browsing@example.com", "applied@example.com"]

    assert rows["applied@example.com"]["applicationCount"] == 1
    assert rows["applied@example.com"]["profile"] == {
        "id": rows["applied@example.com"]["profile"]["id"],
        "fullName": "Ayesha Khan",
        "phone": "+92 300 1234567",
        "nationalId": "35202-1234567-1",
    }
    assert rows["browsing@example.com"]["applicationCount"] == 0
    assert rows["browsing@example.com"]["profile"] is None


def test_stats(client, outbox, db_session):
    _candidate_with_application(client, outbox, db_session, "counted@example.com")
    make_job(db_session, title="Old post", status="Closed")
    client.post("/api/candidate/register", json={"email": "pending@example.com"})
    admin = _login(client, db_session)

    r = client.get("/api/admin/stats", headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    assert r.json() == {
        "totalJobs": 2,
        "openJobs": 1,
        "totalApplications": 1,
        "pendingApplications": 1,
        "totalRegisteredEmails": 2,
        "verifiedEmails": 1,
    }


def test_listings_require_admin_token(client):
    for path in ("/api/admin/applications", "/api/admin/applications/1", "/api/admin/candidates", "/api/admin/stats"):
        r = client.get(path)
        assert r.status_code == 401, (path, r.text)
