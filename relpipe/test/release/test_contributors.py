"""Tests for relpipe.release.contributors."""

from __future__ import annotations

import json
from pathlib import Path

from relpipe.core.result import Err, Ok
from relpipe.output.console import MockConsole
from relpipe.platform.http import HttpError, MockHttpClient
from relpipe.platform.process import ProcessRunner
from relpipe.release.contributors import (
    Contributor,
    ContributorsFetcher,
    contributors_url,
    fetch_all_contributors,
    serialize_contributors,
)

_API = "https://api.github.com"


def _user(login: str, contributions: int = 1) -> dict[str, object]:
    return {"login": login, "html_url": f"https://github.com/{login}", "contributions": contributions}


class TestFetchAllContributors:
    def test_paginates_until_short_page(self) -> None:
        http = MockHttpClient()
        http.set_json(contributors_url(_API, "o/r", 1), [_user(f"u{i}") for i in range(100)])
        http.set_json(contributors_url(_API, "o/r", 2), [_user("last", 7)])

        result = fetch_all_contributors(http, api_url=_API, repository="o/r", token="tok")

        assert isinstance(result, Ok)
        assert len(result.value) == 101
        assert result.value[-1] == Contributor(
            login="last", name="last", profile_url="https://github.com/last", contributions=7
        )
        assert [url for url, _ in http.calls] == [
            f"{_API}/repos/o/r/contributors?per_page=100&page=1",
            f"{_API}/repos/o/r/contributors?per_page=100&page=2",
        ]
        assert http.calls[0][1]["Authorization"] == "Bearer tok"

    def test_no_token_no_auth_header(self) -> None:
        http = MockHttpClient()
        http.set_json(contributors_url(_API, "o/r", 1), [])

        fetch_all_contributors(http, api_url=_API, repository="o/r")

        assert "Authorization" not in http.calls[0][1]

    def test_skips_malformed_entries(self) -> None:
        http = MockHttpClient()
        http.set_json(contributors_url(_API, "o/r", 1), [_user("ok"), {"type": "Anonymous"}, "junk"])

        result = fetch_all_contributors(http, api_url=_API, repository="o/r")

        assert isinstance(result, Ok)
        assert [c.login for c in result.value] == ["ok"]

    def test_http_error(self) -> None:
        result = fetch_all_contributors(MockHttpClient(), api_url=_API, repository="o/r")
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_not_an_array(self) -> None:
        http = MockHttpClient()
        http.set_json(contributors_url(_API, "o/r", 1), {"message": "Moved"})
        result = fetch_all_contributors(http, api_url=_API, repository="o/r")
        assert isinstance(result, Err)
        assert "JSON array" in result.error.message


class TestSerialize:
    def test_login_mapping(self) -> None:
        text = serialize_contributors([Contributor("ann", "Ann", "https://github.com/ann", 3)])
        assert json.loads(text) == {
            "ann": {"name": "Ann", "profile_url": "https://github.com/ann", "contributions": 3}
        }


class TestContributorsFetcher:
    def _fetcher(self, http: MockHttpClient, output: Path, console: MockConsole) -> ContributorsFetcher:
        return ContributorsFetcher(
            http, api_url=_API, repository="o/r", token=None, output=output, console=console
        )

    def test_writes_json(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_json(contributors_url(_API, "o/r", 1), [_user("ann", 2)])
        output = tmp_path / "build" / "contributors.json"

        result = self._fetcher(http, output, MockConsole()).fetch(ProcessRunner(tmp_path))

        assert result == Ok(None)
        assert json.loads(output.read_text())["ann"]["contributions"] == 2

    def test_dry_run_makes_no_request(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        output = tmp_path / "contributors.json"

        result = self._fetcher(http, output, MockConsole()).fetch(ProcessRunner(tmp_path, simulate=True))

        assert result == Ok(None)
        assert http.calls == []
        assert not output.exists()

    def test_network_failure(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_json(
            contributors_url(_API, "o/r", 1),
            HttpError(url="x", status=0, message="Connection refused"),
        )

        result = self._fetcher(http, tmp_path / "c.json", MockConsole()).fetch(ProcessRunner(tmp_path))

        assert isinstance(result, Err)
        assert "Connection refused" in result.error.message
