"""Credentials for notes fetch and push.

libgit2 does not consult git's own credential machinery, so the callback
here asks it explicitly: the `http.<url>.extraheader` that actions/checkout
leaves behind, then `git credential fill`, then the ssh agent.
"""

from __future__ import annotations

import base64
import binascii
import os
import subprocess
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import pygit2

if TYPE_CHECKING:
    from pygit2.enums import CredentialType


def _extraheader_credentials(config: pygit2.Config, url: str) -> tuple[str, str] | None:
    """Decode a basic AUTHORIZATION extraheader configured for url.

    actions/checkout persists its token this way
    (``http.https://github.com/.extraheader``); libgit2 doesn't read it.
    """
    for entry in config:
        name = entry.name
        if not (name.startswith("http.") and name.endswith(".extraheader")):
            continue
        scope = name[len("http.") : -len(".extraheader")]
        if scope and not url.startswith(scope):
            continue
        header, _, value = (entry.value or "").partition(":")
        scheme, _, encoded = value.strip().partition(" ")
        if header.strip().lower() != "authorization" or scheme.lower() != "basic":
            continue
        try:
            decoded = base64.b64decode(encoded.strip()).decode()
        except (binascii.Error, UnicodeDecodeError):
            continue
        username, sep, password = decoded.partition(":")
        if sep:
            return username, password
    return None


def _credential_request(url: str) -> str:
    """Describe url in git-credential's key=value input format."""
    parts = urlparse(url)
    fields = [("protocol", parts.scheme), ("host", parts.hostname or parts.netloc)]
    if parts.port is not None:
        fields.append(("port", str(parts.port)))
    if parts.path:
        fields.append(("path", parts.path.lstrip("/")))
    return "".join(f"{key}={value}\n" for key, value in fields) + "\n"


def _helper_credentials(url: str) -> tuple[str, str] | None:
    """Ask ``git credential fill`` for url, never prompting."""
    try:
        result = subprocess.run(
            ["git", "credential", "fill"],
            input=_credential_request(url),
            capture_output=True,
            text=True,
            timeout=30,
            check=False,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
    except (subprocess.TimeoutExpired, OSError):
        return None
    if result.returncode != 0:
        return None
    answer = dict(line.split("=", 1) for line in result.stdout.splitlines() if "=" in line)
    if "username" not in answer or "password" not in answer:
        return None
    return answer["username"], answer["password"]


class SystemCredentialCallback(pygit2.RemoteCallbacks):
    """Remote callbacks answering with the credentials git would use.

    Pass the repository config to honor extraheader tokens.
    """

    def __init__(self, config: pygit2.Config | None = None) -> None:
        super().__init__()
        self._config = config

    def credentials(  # type: ignore[override]
        self,
        url: str,
        username_from_url: str | None,
        allowed_types: CredentialType,
    ) -> pygit2.UserPass | pygit2.KeypairFromAgent | None:
        kinds = pygit2.enums.CredentialType
        if allowed_types & kinds.USERPASS_PLAINTEXT:
            found = None
            if self._config is not None:
                found = _extraheader_credentials(self._config, url)
            found = found or _helper_credentials(url)
            if found:
                return pygit2.UserPass(*found)
        if allowed_types & kinds.SSH_KEY:
            return pygit2.KeypairFromAgent(username_from_url or "git")
        return None
