"""GitHub Actions workflow commands and event payloads.

GitHubActions writes ``::debug::``/``::warning::``/``::error::`` lines to the
job log and appends outputs to the ``GITHUB_OUTPUT`` file. It has the
debug/warning/error methods of a diagnostic sink, so the coverage core can
report straight into the job log.

See: https://docs.github.com/en/actions/using-workflows/workflow-commands-for-github-actions
"""

from __future__ import annotations

import json
import sys
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TextIO

from coverpkg.core.logging import DiagnosticSink, emit

_ESCAPES = str.maketrans({"%": "%25", "\r": "%0D", "\n": "%0A"})


def escape_data(value: str) -> str:
    """Escape a workflow command message."""
    return value.translate(_ESCAPES)


def _format_message(event: str, args: tuple[Any, ...], kw: Mapping[str, Any]) -> str:
    parts = [event, *(str(a) for a in args)]
    parts.extend(f"{k}={v}" for k, v in kw.items())
    return " ".join(parts)


class GitHubActions:
    """Workflow command writer."""

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        output_path: Path | str | None = None,
        env_path: Path | str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        self._output_path = Path(output_path) if output_path else None
        self._env_path = Path(env_path) if env_path else None

    def _command(self, name: str, message: str) -> None:
        self._stream.write(f"::{name}::{escape_data(message)}\n")
        self._stream.flush()

    def debug(self, event: str, *args: Any, **kw: Any) -> None:
        """Only shown when the ACTIONS_STEP_DEBUG secret is true."""
        self._command("debug", _format_message(event, args, kw))

    def warning(self, event: str, *args: Any, **kw: Any) -> None:
        self._command("warning", _format_message(event, args, kw))

    def error(self, event: str, *args: Any, **kw: Any) -> None:
        self._command("error", _format_message(event, args, kw))

    def print(self, text: str) -> None:
        self._stream.write(text if text.endswith("\n") else text + "\n")
        self._stream.flush()

    def mask(self, secret: str) -> None:
        if secret:
            self._command("add-mask", secret)

    @contextmanager
    def group(self, title: str) -> Iterator[GitHubActions]:
        """Fold everything written inside the block under title."""
        self._command("group", title)
        try:
            yield self
        finally:
            self._stream.write("::endgroup::\n")
            self._stream.flush()

    def _append(self, path: Path | None, var: str, name: str, value: str) -> bool:
        if path is None:
            self.error(f"{var} not available")
            return False
        if "\n" in value or "\r" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            record = f"{name}<<{delimiter}\n{value}\n{delimiter}\n"
        else:
            record = f"{name}={value}\n"
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(record)
        except OSError as e:
            self.error(f"writing {var}:", e)
            return False
        return True

    def set_output(self, name: str, value: str) -> bool:
        """Set a step output. Multi-line values use a heredoc delimiter."""
        return self._append(self._output_path, "GITHUB_OUTPUT", name, value)

    def set_env(self, name: str, value: str) -> bool:
        """Set an environment variable for later steps."""
        return self._append(self._env_path, "GITHUB_ENV", name, value)

    def event(self, path: Path | str) -> GitHubEvent:
        """Load the webhook payload; problems are logged and yield an empty event."""
        return GitHubEvent.load(path, log=self)


class GitHubEvent(dict[str, Any]):
    """Webhook payload with dotted-path lookups, e.g. ``pull_request.base.sha``.

    List elements are addressed by index: ``workflow_run.pull_requests.0.number``.
    """

    @classmethod
    def load(cls, path: Path | str, *, log: DiagnosticSink | None = None) -> GitHubEvent:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            emit(log, "error", f"opening event data: {e}")
            return cls()
        except ValueError as e:
            emit(log, "error", f"decoding event data: {e}")
            return cls()
        if not isinstance(data, dict):
            emit(log, "error", f"decoding event data: expected an object, got {type(data).__name__}")
            return cls()
        return cls(data)

    def lookup(self, path: str, log: DiagnosticSink | None = None) -> Any:
        src: Any = self
        for part in path.split("."):
            if isinstance(src, dict):
                if part not in src:
                    emit(log, "warning", f"invalid event path {part!r} ({path}): {sorted(src)}")
                    return None
                src = src[part]
            elif isinstance(src, list):
                if not part.isdigit() or int(part) >= len(src):
                    emit(log, "warning", f"invalid event path {part!r} ({path}): 0..{len(src)}")
                    return None
                src = src[int(part)]
            else:
                emit(log, "warning", f"invalid event path {part!r} ({path}) in {type(src).__name__}")
                return None
        return src

    def string(self, path: str, log: DiagnosticSink | None = None) -> str:
        value = self.lookup(path, log)
        if isinstance(value, str):
            return value
        emit(log, "error", f"path {path!r}={value!r} {type(value).__name__} not a string")
        return ""

    def integer(self, path: str, log: DiagnosticSink | None = None) -> int:
        value = self.lookup(path, log)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        emit(log, "error", f"path {path!r}={value!r} {type(value).__name__} not an int")
        return 0
