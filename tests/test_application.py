"""Unit tests for starcharts.core.application covering output and exit codes."""

import argparse
import io
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from starcharts.api.github_exceptions import (
    CredentialExhaustedError, RateLimitedError, ResourceNotFoundError, TooManyStargazersError
)
from starcharts.api.models import Repository, Stargazer
from starcharts.api.token_management import TokenPool
from starcharts.cli.environment import Environment
from starcharts.core import application
from starcharts.core.application import Application, write_star_history
from starcharts.utils.path_manager import PathManager

REPO = Repository(full_name="octo/hello", stargazers_count=2,
                  created_at=datetime(2015, 3, 1, tzinfo=timezone.utc))
STARS = [
    Stargazer(starred_at=datetime(2020, 1, 1, tzinfo=timezone.utc)),
    Stargazer(starred_at=datetime(2020, 1, 5, tzinfo=timezone.utc)),
]


def _app(client, tmp_path, token_stats=False):
    args = argparse.Namespace(repository="octo/hello", timeout=None, output=str(tmp_path / "stars.csv"),
                              config=None, log_level="INFO", token_stats=token_stats)
    app = Application(args=args, log_manager=MagicMock())
    app.components.update({"github_client": client, "token_pool": TokenPool(["ghp_aaaaaaaa1111"])})
    return app


def test_write_star_history_is_cumulative():
    out = io.StringIO()
    write_star_history(STARS, out)
    assert out.getvalue().splitlines() == [
        "starred_at,stars",
        "2020-01-01T00:00:00Z,1",
        "2020-01-05T00:00:00Z,2",
    ]


def test_run_writes_csv(tmp_path):
    client = MagicMock()
    client.get_repository.return_value = REPO
    client.get_stargazers.return_value = STARS

    assert _app(client, tmp_path, token_stats=True).run() == application.EXIT_OK
    assert (tmp_path / "stars.csv").read_text().count("\n") == 3


@pytest.mark.parametrize("error, code", [
    (ResourceNotFoundError("octo/hello"), application.EXIT_NOT_FOUND),
    (RateLimitedError(), application.EXIT_RATE_LIMITED),
    (TooManyStargazersError("octo/hello", 401), application.EXIT_TOO_MANY_STARGAZERS),
    (CredentialExhaustedError("couldn't find a valid token"), application.EXIT_API_ERROR),
])
def test_run_maps_errors_to_exit_codes(tmp_path, error, code):
    client = MagicMock()
    client.get_repository.side_effect = error

    assert _app(client, tmp_path).run() == code


def test_interrupt_exits_with_130(tmp_path):
    client = MagicMock()
    client.get_repository.return_value = REPO
    client.get_stargazers.side_effect = KeyboardInterrupt()

    assert _app(client, tmp_path).run() == 130
    assert not (tmp_path / "stars.csv").exists()

def _make_resp(status, payload=None, headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.json.return_value = payload
    resp.text = ""
    return resp


def _cli_run(tmp_path, connection_manager, name):
    env_file = tmp_path / ".env"
    env_file.write_text("LOG_LEVEL=INFO\n")
    args = argparse.Namespace(repository="octo/hello", timeout=None, output=str(tmp_path / name),
                              config=None, log_level="INFO", token_stats=False)
    app = Application(args=args, log_manager=MagicMock(), path_manager=PathManager(tmp_path),
                      environment=Environment(env_file=str(env_file), use_os_environ=False))
    app.components["connection_manager"] = connection_manager
    app.initialize()
    try:
        return app.run()
    finally:
        app.cleanup()


def test_etags_are_reused_across_runs(tmp_path, connection_manager, session):
    repo_payload = {"full_name": "octo/hello", "stargazers_count": 2, "created_at": "2015-03-01T00:00:00Z"}
    stars_payload = [{"starred_at": "2020-01-05T00:00:00Z"}, {"starred_at": "2020-01-01T00:00:00Z"}]
    sent = []

    def first_run(method, url, headers=None, timeout=None):
        sent.append((url, dict(headers)))
        if "/stargazers" in url:
            return _make_resp(200, stars_payload, {"ETag": '"p1"'})
        return _make_resp(200, repo_payload, {"ETag": '"v1"'})

    def second_run(method, url, headers=None, timeout=None):
        sent.append((url, dict(headers)))
        return _make_resp(304)

    session.request.side_effect = first_run
    assert _cli_run(tmp_path, connection_manager, "first.csv") == application.EXIT_OK

    sent.clear()
    session.request.side_effect = second_run
    assert _cli_run(tmp_path, connection_manager, "second.csv") == application.EXIT_OK

    validators = {url.split("?")[0]: headers.get("If-None-Match") for url, headers in sent}
    assert validators == {
        "https://api.github.com/repos/octo/hello": '"v1"',
        "https://api.github.com/repos/octo/hello/stargazers": '"p1"',
    }
    assert (tmp_path / "second.csv").read_text() == (tmp_path / "first.csv").read_text()
    assert (tmp_path / "cache").is_dir()
