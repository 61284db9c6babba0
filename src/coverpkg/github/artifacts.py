"""Reading files out of a workflow run's artifacts.

Pull requests from forks get a read-only token, so the pull_request run
uploads its summary as an artifact and a follow-up workflow_run job, which
has write access, downloads it and comments.
"""

from __future__ import annotations

import io
import zipfile
from typing import Any

import httpx

from coverpkg.core.errors import GitHubError
from coverpkg.core.logging import DiagnosticSink, emit
from coverpkg.github.client import paginate, request


class WorkflowArtifacts:
    def __init__(
        self,
        client: httpx.Client,
        owner: str,
        repo: str,
        *,
        log: DiagnosticSink | None = None,
    ) -> None:
        self._client = client
        self.owner = owner
        self.repo = repo
        self._log = log

    def find(self, run_id: int, name: str) -> dict[str, Any] | None:
        url = f"/repos/{self.owner}/{self.repo}/actions/runs/{run_id}/artifacts"
        try:
            for artifact in paginate(self._client, url, key="artifacts"):
                if artifact.get("name") == name:
                    return artifact
        except GitHubError as e:
            emit(self._log, "warning", f"loading artifacts: {e}")
        return None

    def download(self, artifact_id: int) -> bytes:
        """Zip archive of an artifact. The API redirects to blob storage."""
        url = f"/repos/{self.owner}/{self.repo}/actions/artifacts/{artifact_id}/zip"
        return request(self._client, "GET", url, follow_redirects=True).content

    def read_file(self, run_id: int, name: str, filename: str) -> str | None:
        """Text of filename inside artifact name of run_id; None if absent.

        Raises:
            GitHubError: If the download fails.
        """
        artifact = self.find(run_id, name)
        if artifact is None:
            emit(self._log, "warning", f"no artifact {name!r} in run {run_id}")
            return None
        data = self.download(artifact["id"])
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                return archive.read(filename).decode("utf-8")
        except KeyError:
            emit(self._log, "warning", f"artifact {name!r} has no {filename}")
            return None
        except (zipfile.BadZipFile, UnicodeDecodeError) as e:
            emit(self._log, "warning", f"reading artifact {name!r}: {e}")
            return None
