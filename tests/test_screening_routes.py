import asyncio

from bson import ObjectId

import routes.screening_routes as screening_routes
from conftest import make_result, register
from services.scoring import ScoringError


def run_screening(client, auth, cv_ids, job_description="Senior Python engineer", **extra):
    return client.post(
        "/screening/run",
        json={"jobDescription": job_description, "cvIds": cv_ids, **extra},
        headers=auth,
    )


def test_run_returns_results_and_summary(client, auth, uploaded_cvs, scoring_client):
    alice, bob, carol = uploaded_cvs
    scoring_client.results = [
        make_result(alice["id"], "alice.pdf", 88, "selected"),
        make_result(bob["id"], "bob.docx", 35, "rejected"),
        make_result(carol["id"], "carol.pdf", 61, "selected"),
    ]

    response = run_screening(client, auth, [alice["id"], bob["id"], carol["id"]])

    assert response.status_code == 200
    body = response.json()
    assert [r["cvId"] for r in body["results"]] == [alice["id"], bob["id"], carol["id"]]
    for result in body["results"]:
        assert 0 <= result["score"] <= 100
        assert (result["status"] == "selected") == (result["score"] >= 60)
        for field in ("missingKeywords", "matchedSkills", "selectionReasons", "rejectionReasons"):
            assert isinstance(result[field], list)
    summary = body["summary"]
    assert summary["total"] == 3
    assert summary["selected"] == 2
    assert summary["rejected"] == 1
    assert summary["averageScore"] == 61
    assert [r["cvId"] for r in summary["ranked"]] == [alice["id"], carol["id"], bob["id"]]
    assert summary["contractViolations"] == []
    assert body["persisted"] is True
    assert len(body["screeningIds"]) == 3

    texts = scoring_client.calls[0]["cv_texts"]
    assert texts[0].content == "Alice Smith\nPython developer, 6 years"


def test_empty_job_description_is_rejected_without_calls(client, auth, uploaded_cvs, scoring_client, notifier):
    notifier.sent.clear()
    response = run_screening(client, auth, [uploaded_cvs[0]["id"]], job_description="   ")
    assert response.status_code == 400
    assert scoring_client.calls == []
    assert notifier.sent == []


def test_no_cvs_selected(client, auth, scoring_client):
    response = run_screening(client, auth, [])
    assert response.status_code == 400
    assert scoring_client.calls == []


def test_unknown_cv_is_not_found(client, auth, uploaded_cvs, scoring_client):
    response = run_screening(client, auth, [uploaded_cvs[0]["id"], str(ObjectId())])
    assert response.status_code == 404
    assert scoring_client.calls == []


def test_cvs_of_other_users_are_not_visible(client, auth, uploaded_cvs, scoring_client):
    other = register(client, email="other@acme.io")
    other_auth = {"Authorization": f"Bearer {other['access_token']}"}
    response = run_screening(client, other_auth, [uploaded_cvs[0]["id"]])
    assert response.status_code == 404


def test_one_failed_download_still_scores_all(client, auth, uploaded_cvs, storage, scoring_client):
    storage.fail_get.add(uploaded_cvs[1]["filePath"])

    response = run_screening(client, auth, [cv["id"] for cv in uploaded_cvs])

    assert response.status_code == 200
    texts = scoring_client.calls[0]["cv_texts"]
    assert len(texts) == 3
    assert texts[1].content == "[Could not read CV: bob.docx]"


def test_rate_limit_status_is_kept(client, auth, uploaded_cvs, scoring_client):
    scoring_client.error = ScoringError(429, "Rate limit exceeded. Please try again later.")
    response = run_screening(client, auth, [uploaded_cvs[0]["id"]])
    assert response.status_code == 429
    assert response.json()["detail"] == "Rate limit exceeded. Please try again later."


def test_quota_status_is_kept(client, auth, uploaded_cvs, scoring_client):
    scoring_client.error = ScoringError(402, "AI credits exhausted. Please add credits to continue.")
    response = run_screening(client, auth, [uploaded_cvs[0]["id"]])
    assert response.status_code == 402


def test_threshold_mismatch_is_flagged_not_fixed(client, auth, uploaded_cvs, scoring_client):
    alice = uploaded_cvs[0]
    scoring_client.results = [make_result(alice["id"], "alice.pdf", 30, "selected")]

    body = run_screening(client, auth, [alice["id"]]).json()

    assert body["results"][0]["status"] == "selected"
    assert body["results"][0]["score"] == 30
    assert body["summary"]["contractViolations"] == [alice["id"]]


def test_results_are_persisted_per_cv(client, auth, uploaded_cvs, scoring_client, mongo_db):
    alice = uploaded_cvs[0]
    role = client.post("/job-roles/", json={"title": "Backend Engineer"}, headers=auth).json()
    scoring_client.results = [make_result(alice["id"], "alice.pdf", 72, "selected")]

    run_screening(client, auth, [alice["id"]], jobRoleId=role["id"])

    stored = client.get(f"/screening/results/{alice['id']}", headers=auth).json()["results"]
    assert len(stored) == 1
    assert stored[0]["atsScore"] == 72
    assert stored[0]["status"] == "selected"
    assert stored[0]["jobRoleId"] == role["id"]
    assert stored[0]["matchedSkills"] == ["python"]
    assert client.get(f"/screening/count/{alice['id']}", headers=auth).json() == {"count": 1}

    doc = asyncio.run(mongo_db["cv_screenings"].find_one({}))
    assert doc["cv_id"] == ObjectId(alice["id"])


def test_unknown_job_role_is_not_found(client, auth, uploaded_cvs, scoring_client):
    response = run_screening(client, auth, [uploaded_cvs[0]["id"]], jobRoleId=str(ObjectId()))
    assert response.status_code == 404
    assert scoring_client.calls == []


def test_persistence_failure_still_returns_results(client, auth, uploaded_cvs, scoring_client, monkeypatch):
    async def broken_persist(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(screening_routes, "persist_results", broken_persist)
    body = run_screening(client, auth, [uploaded_cvs[0]["id"]]).json()

    assert body["persisted"] is False
    assert len(body["results"]) == 1


def test_selection_endpoint_notifies(client, auth, uploaded_cvs, notifier):
    notifier.sent.clear()
    response = client.post("/screening/selection", json={"cvIds": [cv["id"] for cv in uploaded_cvs]}, headers=auth)

    assert response.status_code == 200
    assert response.json()["totalSelected"] == 3
    assert notifier.sent[0][1]["action"] == "start_screening"


def test_selection_endpoint_requires_cvs(client, auth):
    response = client.post("/screening/selection", json={"cvIds": []}, headers=auth)
    assert response.status_code == 400


def test_count_rejects_bad_id(client, auth):
    assert client.get("/screening/count/not-an-id", headers=auth).status_code == 400
