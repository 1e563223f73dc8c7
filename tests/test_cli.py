import json

import pytest
from click.testing import CliRunner

from conftest import FakeBackend
from prospect_research import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("SETTINGS_FILE", str(tmp_path / "settings.json"))
    monkeypatch.setenv("DB_PATH", str(tmp_path / "p.db"))
    return CliRunner()


@pytest.fixture
def fake_browser(monkeypatch):
    backend = FakeBackend()
    monkeypatch.setattr(
        cli.BrowserAutomationBackend, "from_config", classmethod(lambda cls, config, sessions: backend),
    )
    return backend


def test_research_needs_an_identifying_field(runner):
    result = runner.invoke(cli.main, ["research"])
    assert result.exit_code == 1
    assert "at least one of" in result.output


def test_research_prints_json(runner, fake_browser):
    result = runner.invoke(cli.main, ["research", "--website", "acme.com", "--json"])
    assert result.exit_code == 0, result.output
    assert fake_browser.methods_called == ["lookup_contacts", "lookup_website"]
    assert '"success": true' in result.output


def test_research_file_writes_outcomes(runner, fake_browser, tmp_path):
    input_file = tmp_path / "prospects.json"
    input_file.write_text(json.dumps([
        {"id": "a", "name": "Jane Doe", "company": "Acme"},
        {"id": "b", "website": "beta.io"},
    ]))
    output = tmp_path / "out.json"

    result = runner.invoke(
        cli.main, ["research-file", str(input_file), "-c", "2", "-o", str(output)],
    )
    assert result.exit_code == 0, result.output

    outcomes = json.loads(output.read_text())
    assert [o["data"]["prospect"]["id"] for o in outcomes] == ["a", "b"]
    assert all(o["success"] for o in outcomes)
    assert outcomes[0]["data"]["searchResults"]["success"] is True
    assert outcomes[1]["data"]["searchResults"] is None


def test_research_file_rejects_bad_input(runner, tmp_path):
    input_file = tmp_path / "bad.json"
    input_file.write_text('[{"name": "no id"}]')
    result = runner.invoke(cli.main, ["research-file", str(input_file)])
    assert result.exit_code == 1
    assert "Input error" in result.output


def test_places_without_token_exits(runner):
    result = runner.invoke(cli.main, ["places", "bakery", "--location", "Lyon"])
    assert result.exit_code == 1
    assert "Apify API key not configured" in result.output


def test_apify_backend_never_builds_a_browser(runner, monkeypatch):
    built = []
    monkeypatch.setattr(cli, "BrowserSessionManager", lambda **kwargs: built.append(kwargs))

    result = runner.invoke(cli.main, ["research", "--website", "acme.com", "--backend", "apify", "--json"])
    assert result.exit_code == 0, result.output
    assert built == []
    assert "Apify API key not configured" in result.output


def test_playwright_backend_closes_its_browser(runner, fake_browser, monkeypatch):
    closed = []

    class RecordingSessions:
        def __init__(self, headless):
            self.headless = headless

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            closed.append(self.headless)

    monkeypatch.setattr(cli, "BrowserSessionManager", RecordingSessions)

    result = runner.invoke(cli.main, ["research", "--website", "acme.com"])
    assert result.exit_code == 0, result.output
    assert len(closed) == 1
