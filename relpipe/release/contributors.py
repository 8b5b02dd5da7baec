"""Fetch the contributors of the GitHub repository being released.

The result is written as JSON, login -> {name, profile_url, contributions},
for the notes writer to pick up.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.core.structured import as_str_dict, get_str
from relpipe.output.console import ConsoleProtocol, Style
from relpipe.pipeline.step import ActionError
from relpipe.platform.files import atomic_write_text
from relpipe.platform.http import HttpClient, HttpError
from relpipe.platform.process import ProcessRunner

__all__ = [
    "Contributor",
    "ContributorsFetcher",
    "contributors_url",
    "fetch_all_contributors",
    "serialize_contributors",
]

PER_PAGE = 100
MAX_PAGES = 50


@dataclass(frozen=True, slots=True)
class Contributor:
    login: str
    name: str
    profile_url: str
    contributions: int


def contributors_url(api_url: str, repository: str, page: int) -> str:
    return f"{api_url}/repos/{repository}/contributors?per_page={PER_PAGE}&page={page}"


def _auth_headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _parse_contributor(item: object) -> Contributor | None:
    entry = as_str_dict(item)
    if entry is None:
        return None
    login = get_str(entry, "login")
    if login is None:
        return None
    contributions = entry.get("contributions")
    return Contributor(
        login=login,
        name=get_str(entry, "name") or login,
        profile_url=get_str(entry, "html_url") or "",
        contributions=contributions if isinstance(contributions, int) else 0,
    )


def fetch_all_contributors(
    http: HttpClient,
    *,
    api_url: str,
    repository: str,
    token: str | None = None,
    max_pages: int = MAX_PAGES,
) -> Result[tuple[Contributor, ...], HttpError]:
    """Page through the contributors endpoint until a short page."""
    headers = _auth_headers(token)
    found: list[Contributor] = []
    for page in range(1, max_pages + 1):
        url = contributors_url(api_url, repository, page)
        result = http.get_json(url, headers)
        if isinstance(result, Err):
            return result
        items = result.value
        if not isinstance(items, list):
            return Err(HttpError(url=url, status=0, message="expected a JSON array"))
        for item in items:
            contributor = _parse_contributor(item)
            if contributor is not None:
                found.append(contributor)
        if len(items) < PER_PAGE:
            break
    return Ok(tuple(found))


def serialize_contributors(contributors: Sequence[Contributor]) -> str:
    data = {
        c.login: {
            "name": c.name,
            "profile_url": c.profile_url,
            "contributions": c.contributions,
        }
        for c in contributors
    }
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


class ContributorsFetcher:
    """Step action: fetch contributors and write them to `output`."""

    def __init__(
        self,
        http: HttpClient,
        *,
        api_url: str,
        repository: str,
        token: str | None,
        output: Path,
        console: ConsoleProtocol,
    ) -> None:
        self.output = output
        self._http = http
        self._api_url = api_url
        self._repository = repository
        self._token = token
        self._console = console

    def fetch(self, runner: ProcessRunner) -> Result[None, ActionError]:
        if runner.simulate:
            self._console.print(
                f"  [dry-run] would fetch contributors of {self._repository} into {self.output.name}",
                Style.DIM,
            )
            return Ok(None)

        result = fetch_all_contributors(
            self._http,
            api_url=self._api_url,
            repository=self._repository,
            token=self._token,
        )
        if isinstance(result, Err):
            return Err(
                ActionError(
                    f"cannot fetch contributors: {result.error}",
                    hint=f"Set a read-only token for {self._repository}",
                )
            )

        try:
            atomic_write_text(self.output, serialize_contributors(result.value))
        except OSError as e:
            return Err(ActionError(f"cannot write {self.output.name}: {e}", hint=str(self.output)))

        self._console.print(f"  {len(result.value)} contributors written to {self.output}", Style.DIM)
        return Ok(None)
