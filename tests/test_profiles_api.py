from conftest import OTHER_USER_ID, USER_ID, make_profile


def test_get_me_returns_existing_profile(client, fake_db):
    fake_db.seed("profiles", make_profile(coding_languages=None, github_commit_count=None))
    resp = client.get("/api/v1/profiles/me")
    assert resp.status_code == 200
    body = resp.json()
    assert body["username"] == "janesmith"
    assert body["coding_languages"] == []
    assert body["github_commit_count"] == 0


def test_get_me_creates_profile_from_auth_metadata(client, fake_db):
    resp = client.get("/api/v1/profiles/me")
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == USER_ID
    assert body["username"] == "jane"
    assert body["full_name"] == "Jane Smith"
    assert body["github_username"] == "janesmith"
    assert body["onboarding_completed"] is False
    assert body["privacy_settings"]["profileVisibility"] == "public"
    assert len(fake_db.tables["profiles"]) == 1


def test_update_validates_only_provided_fields(client, fake_db):
    fake_db.seed("profiles", make_profile())
    resp = client.put("/api/v1/profiles/me", json={"about_me": "  I write Go and Python services.  "})
    assert resp.status_code == 200
    assert resp.json()["about_me"] == "I write Go and Python services."
    assert resp.json()["username"] == "janesmith"


def test_update_formats_name_and_username(client, fake_db):
    fake_db.seed("profiles", make_profile())
    resp = client.put("/api/v1/profiles/me", json={"full_name": "jane   DOE", "username": "Jane-Doe"})
    assert resp.status_code == 200
    assert resp.json()["full_name"] == "Jane Doe"
    assert resp.json()["username"] == "jane-doe"


def test_update_rejects_invalid_fields_with_labels(client, fake_db):
    fake_db.seed("profiles", make_profile())
    resp = client.put("/api/v1/profiles/me", json={"age": 10, "username": "admin"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == [
        "Username: This username is reserved. Please choose a different one.",
        "Age: You must be at least 13 years old to use DevRecruit",
    ]


def test_update_empty_about_me_clears_it(client, fake_db):
    fake_db.seed("profiles", make_profile(about_me="Something meaningful here"))
    resp = client.put("/api/v1/profiles/me", json={"about_me": ""})
    assert resp.status_code == 200
    assert resp.json()["about_me"] is None


def test_update_username_taken(client, fake_db):
    fake_db.seed("profiles", make_profile(), make_profile(OTHER_USER_ID, username="takenname"))
    resp = client.put("/api/v1/profiles/me", json={"username": "takenname"})
    assert resp.status_code == 409


def test_update_missing_profile(client):
    resp = client.put("/api/v1/profiles/me", json={"about_me": "I like writing compilers"})
    assert resp.status_code == 404


def _onboarding_body(**overrides):
    body = {
        "full_name": "jane smith",
        "username": "janesmith",
        "age": "28",
        "education_status": "professional",
        "coding_languages": ["Python", "Go"],
    }
    body.update(overrides)
    return body


def test_complete_onboarding_refreshes_github(client, fake_db, github_calls):
    fake_db.seed("profiles", make_profile(onboarding_completed=False, age=None, github_repository_count=0))
    resp = client.post("/api/v1/profiles/me/onboarding", json=_onboarding_body())
    assert resp.status_code == 200
    body = resp.json()
    assert body["profile"]["onboarding_completed"] is True
    assert body["profile"]["full_name"] == "Jane Smith"
    assert body["profile"]["age"] == 28
    assert body["languages_truncated"] is False
    assert body["github_stats_refreshed"] is True
    assert body["profile"]["github_repository_count"] == 7
    assert body["profile"]["github_commit_count"] == 70
    assert github_calls == ["/users/janesmith"]


def test_complete_onboarding_truncates_languages(client, fake_db):
    fake_db.seed("profiles", make_profile(onboarding_completed=False))
    languages = [f"Lang{i}" for i in range(18)]
    resp = client.post("/api/v1/profiles/me/onboarding", json=_onboarding_body(coding_languages=languages))
    assert resp.status_code == 200
    body = resp.json()
    assert body["languages_truncated"] is True
    assert body["profile"]["coding_languages"] == languages[:15]


def test_complete_onboarding_reports_all_errors(client, fake_db):
    fake_db.seed("profiles", make_profile(onboarding_completed=False))
    resp = client.post(
        "/api/v1/profiles/me/onboarding",
        json=_onboarding_body(full_name="Jane", age="", coding_languages=[]),
    )
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert "Full Name: Please enter your first and last name" in detail
    assert "Age: Age is required" in detail
    assert "Languages: Please select at least one coding language" in detail
    assert fake_db.tables["profiles"][0]["onboarding_completed"] is False


def test_onboarding_status_next_step(client, fake_db):
    fake_db.seed("profiles", make_profile(onboarding_completed=False, age=None))
    resp = client.get("/api/v1/profiles/me/onboarding")
    assert resp.json() == {"onboarding_completed": False, "next_step": 2}


def test_onboarding_status_completed(client, fake_db):
    fake_db.seed("profiles", make_profile())
    resp = client.get("/api/v1/profiles/me/onboarding")
    assert resp.json() == {"onboarding_completed": True, "next_step": None}


def test_validate_step_endpoint(client):
    resp = client.post("/api/v1/profiles/onboarding/steps/1/validate", json={"full_name": "Jane", "username": "jane"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["is_valid"] is False
    assert body["fields"]["username"]["is_valid"] is True
    assert body["fields"]["full_name"]["suggestion"] == "Example: John Smith"
    assert body["errors"] == ["Full Name: Please enter your first and last name"]


def test_validate_full_profile_endpoint(client):
    resp = client.post("/api/v1/profiles/validate", json={
        "full_name": "Jane Smith",
        "username": "janesmith",
        "age": 28,
        "education_status": "college",
        "coding_languages": ["Rust"],
    })
    assert resp.status_code == 200
    assert resp.json()["is_valid"] is True
    assert set(resp.json()["fields"]) == {
        "full_name", "username", "age", "about_me", "education_status", "coding_languages"
    }


def test_character_count_endpoint(client):
    resp = client.post("/api/v1/profiles/character-count", json={"text": "x" * 460, "max_length": 500})
    assert resp.json() == {"current": 460, "max": 500, "remaining": 40, "level": "near_limit", "is_over_limit": False}
