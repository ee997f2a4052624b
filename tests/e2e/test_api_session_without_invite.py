from fastapi.testclient import TestClient

from api_server import app


def test_ad_hoc_session_is_not_scored(seeded_records, fake_models):
    with TestClient(app) as client:
        start = client.post(
            "/api/session/start",
            json={
                "persona_id": "walk-up",
                "attendee_profile": "Persona: Staff Engineer\nModifiers: budget review\nEmotional posture: neutral",
                "conference_context": "Conference: Local meetup",
            },
        )
        assert start.status_code == 201
        session = start.json()
        assert session["transcript"][0]["text"] == "*stops by, clearly evaluating options*"
        assert session["kickoff"]["enrichment"] is None

        turn = client.post(
            f"/api/session/{session['id']}/message",
            json={"text": "Are you using OpenTelemetry with your collectors already? Refinery helps."},
        ).json()
        assert turn["session"]["current_state"] == "ICEBREAKER"
        assert turn["violations"] == ['Used banned keyword: "refinery"']

        ended = client.post(f"/api/session/{session['id']}/end").json()
        assert ended["outcome"] == "POLITE_EXIT"
        assert ended["score"] is None
        assert ended["state_progress"] == {"reached": 0, "total": 4}

        board = client.get("/api/leaderboard", params={"range": "all"}).json()
        assert board["total_stored"] == 0
