"""
Tests for the linkbrain admin CLI
"""
import pytest
from typer.testing import CliRunner

from linkbrain.cli import app

runner = CliRunner()


@pytest.fixture
def db_args(tmp_path):
    args = ["--database-url", f"sqlite:///{tmp_path / 'cli.db'}"]
    result = runner.invoke(app, [*args, "init"])
    assert result.exit_code == 0, result.output
    return args


def test_init(db_args):
    result = runner.invoke(app, [*db_args, "init"])

    assert result.exit_code == 0
    assert "Database initialized successfully" in result.output


def test_provision_and_status(db_args):
    result = runner.invoke(app, [*db_args, "provision", "alice"])

    assert result.exit_code == 0, result.output
    assert "Subscription created for alice" in result.output
    assert result.output.count("LB-") == 5

    result = runner.invoke(app, [*db_args, "status", "alice"])

    assert result.exit_code == 0, result.output
    assert "Plan: trial" in result.output
    assert "15 days" in result.output
    assert "Referrals: 0" in result.output


def test_provision_twice_fails(db_args):
    runner.invoke(app, [*db_args, "provision", "alice"])

    result = runner.invoke(app, [*db_args, "provision", "alice"])

    assert result.exit_code == 1
    assert "ALREADY_PROVISIONED" in result.output


def test_redeem_and_lookup(db_args):
    result = runner.invoke(app, [*db_args, "provision", "alice"])
    code = next(token for token in result.output.split() if token.startswith("LB-"))

    result = runner.invoke(app, [*db_args, "lookup", code.lower()])
    assert result.exit_code == 0, result.output
    assert "alice" in result.output

    result = runner.invoke(app, [*db_args, "redeem", code, "bob"])
    assert result.exit_code == 0, result.output
    assert "Inviter: alice" in result.output

    result = runner.invoke(app, [*db_args, "redeem", code, "carol"])
    assert result.exit_code == 1
    assert "CODE_ALREADY_USED" in result.output

    result = runner.invoke(app, [*db_args, "status", "alice"])
    assert "Referrals: 1" in result.output
    assert "bob" in result.output


def test_lookup_unknown_code(db_args):
    result = runner.invoke(app, [*db_args, "lookup", "LB-ZZZZZZ"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_status_unknown_user(db_args):
    result = runner.invoke(app, [*db_args, "status", "ghost"])

    assert result.exit_code == 1
    assert "SUBSCRIPTION_NOT_FOUND" in result.output


def test_serve_runs_api_on_given_port(db_args, monkeypatch):
    calls = []
    monkeypatch.setattr("linkbrain.cli.uvicorn.run", lambda app, **kwargs: calls.append((app, kwargs)))

    result = runner.invoke(app, [*db_args, "serve", "--port", "9001"])

    assert result.exit_code == 0, result.output
    served, kwargs = calls[0]
    assert served.title == "LinkBrain API"
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 9001
