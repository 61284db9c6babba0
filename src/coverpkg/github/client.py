"""Thin httpx wrapper for the GitHub REST API."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import httpx

from coverpkg.core.errors import GitHubError

DEFAULT_API_URL = "https://api.github.com"
PER_PAGE = 20


def github_client(
    token: str = "",
    *,
    api_url: str = DEFAULT_API_URL,
    timeout: float = 30.0,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create a client with GitHub's JSON media type and the token, if any."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "coverpkg",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.Client(
        base_url=api_url.rstrip("/"),
        headers=headers,
        timeout=timeout,
        transport=transport,
    )


def request(client: httpx.Client, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """Send a request, turning transport failures and 4xx/5xx into GitHubError."""
    try:
        response = client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        raise GitHubError.request_failed(method, url, 0, str(e)) from e
    if response.is_error:
        reason = response.reason_phrase
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            reason = body["message"]
        raise GitHubError.request_failed(method, url, response.status_code, reason)
    return response


def paginate(client: httpx.Client, url: str, *, key: str | None = None) -> Iterator[dict[str, Any]]:
    """Yield items across pages, following ``Link: rel="next"``.

    Args:
        key: For endpoints that wrap their list, e.g. ``"artifacts"``.
    """
    next_url: str | None = url
    params: dict[str, Any] | None = {"per_page": PER_PAGE}
    while next_url:
        response = request(client, "GET", next_url, params=params)
        data = response.json()
        yield from data[key] if key else data
        next_url = response.links.get("next", {}).get("url")
        params = None  # next links carry their own query
