import json

from conftest import auth_headers, make_job, profile_payload, register_and_verify, save_profile

from backend.careers.models.application import Application
from backend.careers.models.profile import Profile
from backend.careers.schemas.identity import CandidateRef
from backend.careers.services.profile_lock import is_locked


def _apply(client, token: str, job_id: int, cv_path: str):
    return client.post(
        f"/api/public/apply/{job_id}",
        data={"fullName": "Ayesha Khan", "phone": "+92 300 1234567", "cvPath": cv_path},
        headers=auth_headers(token),
    )


def _admin_token(client, db_session) -> str:
    from backend.careers.services.admin import create_admin

    create_admin(db_session, "principal", "correct-horse")
    r = client.post("/api/admin/login", json={"username": "principal", "password": "correct-horse"})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def test_profile_locks_after_first_application(client, outbox, db_session):
    token = register_and_verify(client, outbox, "locked@example.com")
    profile = save_profile(client, token).json()["profile"]
    job = make_job(db_session)

    assert is_locked(db_session, CandidateRef(id=profile["candidateId"])) is False

    r = _apply(client, token, job.id, profile["resumePath"])
    assert r.status_code == 200, r.text

    r = client.get("/api/profile", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    assert r.json()["isLocked"] is True

    r = client.put(
        "/api/profile",
        data={"profileData": json.dumps(profile_payload(address="Somewhere else"))},
        headers=auth_headers(token),
    )
    assert r.status_code == 403, r.text
    assert r.json()["isLocked"] is True

    db_session.expire_all()
    stored = db_session.query(Profile).filter(Profile.id == profile["id"]).one()
    assert stored.address == "12 Canal Road, Lahore"


def test_lock_is_checked_before_validation(client, outbox, db_session):
    token = register_and_verify(client, outbox, "early@example.com")
    profile = save_profile(client, token).json()["profile"]
    job = make_job(db_session)
    assert _apply(client, token, job.id, profile["resumePath"]).status_code == 200

    r = client.post("/api/profile", data={"profileData": "{not json"}, headers=auth_headers(token))
    assert r.status_code == 403, r.text


def test_deleting_the_last_application_unlocks(client, outbox, db_session):
    token = register_and_verify(client, outbox, "unlock@example.com")
    profile = save_profile(client, token).json()["profile"]
    job = make_job(db_session)
    application = _apply(client, token, job.id, profile["resumePath"]).json()["application"]

    admin = _admin_token(client, db_session)
    r = client.delete(f"/api/admin/application/{application['id']}", headers=auth_headers(admin))
    assert r.status_code == 200, r.text

    assert db_session.query(Application).count() == 0
    r = save_profile(client, token, with_resume=False, address="New address 7")
    assert r.status_code == 200, r.text
    assert r.json()["profile"]["address"] == "New address 7"


def test_lock_ignores_other_candidates_applications(client, outbox, db_session):
    applicant = register_and_verify(client, outbox, "applicant@example.com")
    bystander = register_and_verify(client, outbox, "bystander@example.com")
    profile = save_profile(client, applicant).json()["profile"]
    assert save_profile(client, bystander, nationalId="35202-7654321-9").status_code == 200

    job = make_job(db_session)
    assert _apply(client, applicant, job.id, profile["resumePath"]).status_code == 200

    r = save_profile(client, bystander, with_resume=False, nationalId="35202-7654321-9", address="Still editable")
    assert r.status_code == 200, r.text


def test_lock_holds_whatever_the_application_status(client, outbox, db_session):
    token = register_and_verify(client, outbox, "decided@example.com")
    profile = save_profile(client, token).json()["profile"]
    job = make_job(db_session)
    application = _apply(client, token, job.id, profile["resumePath"]).json()["application"]
    admin = _admin_token(client, db_session)

    for status in ("Rejected", "Selected"):
        r = client.put(
            f"/api/admin/application/{application['id']}/status",
            json={"status": status},
            headers=auth_headers(admin),
        )
        assert r.status_code == 200, r.text

        r = save_profile(client, token, with_resume=False, address="After the decision")
        assert r.status_code == 403, r.text
        assert r.json()["isLocked"] is True
