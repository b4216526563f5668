import json

from conftest import auth_headers, make_job, register_and_verify, resume_file, save_profile

from backend.careers.models.application import Application


def _form(**overrides) -> dict:
    data = {"fullName": "Ayesha Khan", "phone": "+92 300 1234567"}
    data.update(overrides)
    return data


def test_apply_with_profile_resume(client, outbox, db_session):
    token = register_and_verify(client, outbox, "apply@example.com")
    profile = save_profile(client, token).json()["profile"]
    job = make_job(db_session)

    r = client.post(
        f"/api/public/apply/{job.id}",
        data=_form(cvPath=profile["resumePath"], minimumSalary="60000"),
        headers=auth_headers(token),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["msg"] == "Application submitted successfully!"
    application = body["application"]
    assert application["status"] == "Pending"
    assert application["cvPath"] == profile["resumePath"]
    assert application["profileId"] == profile["id"]
    assert application["email"] == "apply@example.com"
    assert application["minimumSalary"] == "60000"

    assert any(m["to"] == "apply@example.com" and "Primary Teacher" in m["html"] for m in outbox)

    r = client.get(f"/api/public/check-application/{job.id}", headers=auth_headers(token))
    assert r.json() == {"applied": True}


def test_apply_with_uploaded_cv_and_no_profile(client, outbox, db_session):
    token = register_and_verify(client, outbox, "upload@example.com")
    job = make_job(db_session)

    r = client.post(
        f"/api/public/apply/{job.id}",
        data=_form(),
        files={"cv": resume_file("cv.docx")},
        headers=auth_headers(token),
    )
    assert r.status_code == 200, r.text
    application = r.json()["application"]
    assert application["cvPath"].startswith("/uploads/cvs/")
    assert application["profileId"] is None


def test_duplicate_application_is_rejected(client, outbox, db_session):
    token = register_and_verify(client, outbox, "dup@example.com")
    profile = save_profile(client, token).json()["profile"]
    job = make_job(db_session)
    form = _form(cvPath=profile["resumePath"])

    first = client.post(f"/api/public/apply/{job.id}", data=form, headers=auth_headers(token))
    assert first.status_code == 200, first.text

    second = client.post(f"/api/public/apply/{job.id}", data=form, headers=auth_headers(token))
    assert second.status_code == 400, second.text
    assert second.json()["alreadyApplied"] is True

    assert db_session.query(Application).filter(Application.job_id == job.id).count() == 1


def test_foreign_cv_path_is_not_accepted(client, outbox, db_session):
    token = register_and_verify(client, outbox, "foreign@example.com")
    save_profile(client, token)
    job = make_job(db_session)

    r = client.post(
        f"/api/public/apply/{job.id}",
        data=_form(cvPath="/uploads/cvs/someone-else.pdf"),
        headers=auth_headers(token),
    )
    assert r.status_code == 400, r.text
    assert r.json()["msg"] == "CV file is required"


def test_apply_to_closed_or_missing_job(client, outbox, db_session):
    token = register_and_verify(client, outbox, "closed@example.com")
    closed = make_job(db_session, status="Closed")
    files = {"cv": resume_file()}

    r = client.post(f"/api/public/apply/{closed.id}", data=_form(), files=files, headers=auth_headers(token))
    assert r.status_code == 400, r.text

    r = client.post("/api/public/apply/9999", data=_form(), files=files, headers=auth_headers(token))
    assert r.status_code == 404, r.text


def test_apply_validates_contact_fields(client, outbox, db_session):
    token = register_and_verify(client, outbox, "fields@example.com")
    job = make_job(db_session)

    r = client.post(
        f"/api/public/apply/{job.id}",
        data=_form(phone="call me"),
        files={"cv": resume_file()},
        headers=auth_headers(token),
    )
    assert r.status_code == 400, r.text
    assert db_session.query(Application).count() == 0


def test_apply_requires_auth(client, db_session):
    job = make_job(db_session)
    r = client.post(f"/api/public/apply/{job.id}", data=_form())
    assert r.status_code == 401, r.text


def test_job_listing_marks_applied_jobs(client, outbox, db_session):
    token = register_and_verify(client, outbox, "browse@example.com")
    profile = save_profile(client, token).json()["profile"]
    applied = make_job(db_session, title="Art Teacher")
    other = make_job(db_session, title="Music Teacher")
    make_job(db_session, title="Retired Post", status="Closed")

    client.post(f"/api/public/apply/{applied.id}", data=_form(cvPath=profile["resumePath"]), headers=auth_headers(token))

    client.cookies.clear()
    anonymous = client.get("/api/public/jobs").json()
    assert {j["title"] for j in anonymous} == {"Art Teacher", "Music Teacher"}
    assert all("applied" not in j for j in anonymous)

    signed_in = {j["id"]: j["applied"] for j in client.get("/api/public/jobs", headers=auth_headers(token)).json()}
    assert signed_in == {applied.id: True, other.id: False}


def test_apply_summarizes_numeric_education_years(client, outbox, db_session):
    token = register_and_verify(client, outbox, "years@example.com")
    job = make_job(db_session)
    education = json.dumps([
        {"degree": "BEd", "institution": "UoE", "yearOfCompletion": 2019},
        {"degree": "MA", "institution": "PU", "yearOfCompletion": None},
    ])

    r = client.post(
        f"/api/public/apply/{job.id}",
        data=_form(education=education),
        files={"cv": resume_file()},
        headers=auth_headers(token),
    )
    assert r.status_code == 200, r.text
    assert r.json()["application"]["education"] == "BEd - UoE (2019); MA - PU"
