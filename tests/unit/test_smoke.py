"""Basic smoke tests for the server wiring and the operator CLI."""
import json

from observability import admin_cli
from services import sessions


def test_imports():
    from fastapi.testclient import TestClient

    import api_server
    from config.settings import settings

    assert settings.DB_PATH.endswith(".db")
    client = TestClient(api_server.app)
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/api/leaderboard").status_code == 200


def test_admin_cli_reports_missing_score(capsys):
    assert admin_cli.main(["--migrate", "--score", "nope"]) == 1
    assert "No score stored" in capsys.readouterr().out


def test_admin_cli_tails_and_prints_scores(seeded_records, capsys):
    invite = sessions.create_invite("p-sre", "c-kubecon", trainee_id="t-1")
    sessions.complete_session(invite.session.id)

    assert admin_cli.main(["--tail-leaderboard", "5"]) == 0
    out = capsys.readouterr().out
    assert "1 matched / 1 stored (range=all)" in out
    assert invite.invite.token in out

    assert admin_cli.main(["--score", invite.invite.token]) == 0
    assert json.loads(capsys.readouterr().out)["token"] == invite.invite.token


def test_admin_cli_invalidates_enrichment(capsys):
    assert admin_cli.main(["--invalidate-enrichment"]) == 0
    assert "Removed 0 enrichment entries" in capsys.readouterr().out
