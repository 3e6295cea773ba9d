"""
Shared pytest fixtures for l5dsuite tests.

This module provides:
- CommandMocker: intercepts subprocess.run with pattern-matched responses
- Harness context fixtures backed by a temporary repository root
"""

import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Pattern, Union
from unittest.mock import MagicMock

import pytest

from l5dsuite.config import HarnessOptions, load_config, set_value
from l5dsuite.context import HarnessContext


# =============================================================================
# Command Mocking Infrastructure
# =============================================================================

@dataclass
class CommandResponse:
    """Represents a mocked command response."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    def to_completed_process(self) -> MagicMock:
        """Convert to a subprocess.CompletedProcess-like mock."""
        result = MagicMock()
        result.stdout = self.stdout
        result.stderr = self.stderr
        result.returncode = self.returncode
        return result


@dataclass
class CommandCall:
    """Record of a command run during testing."""
    command: List[str]
    full_command_str: str
    input: Optional[str] = None
    env: Optional[dict] = None
    cwd: Optional[str] = None
    kwargs: dict = field(default_factory=dict)


class CommandMocker:
    """
    Mock subprocess.run with pattern-matched responses.

    Patterns are regexes searched in the space-joined command line. The most
    recently registered matching pattern wins; unmatched commands succeed
    with empty output.

    Usage:
        def test_reachable(commands, ctx):
            commands.register(r"get ns", CommandResponse(returncode=1))
            ...
            assert commands.was_called_with("kubectl --request-timeout=5s get ns")
    """

    def __init__(self):
        self._responses: List[tuple[Pattern, Union[CommandResponse, Exception]]] = []
        self._call_history: List[CommandCall] = []
        self.default_response = CommandResponse()

    def register(self, pattern: str, response: Union[CommandResponse, Exception]) -> "CommandMocker":
        self._responses.insert(0, (re.compile(pattern), response))
        return self

    def fail(self, pattern: str, returncode: int = 1, stderr: str = "boom") -> "CommandMocker":
        return self.register(pattern, CommandResponse(stderr=stderr, returncode=returncode))

    def mock_run(self, cmd, **kwargs):
        cmd_str = " ".join(str(c) for c in cmd)
        self._call_history.append(CommandCall(
            command=list(cmd),
            full_command_str=cmd_str,
            input=kwargs.get("input"),
            env=kwargs.get("env"),
            cwd=kwargs.get("cwd"),
            kwargs=kwargs,
        ))

        response = self.default_response
        for pattern, resp in self._responses:
            if pattern.search(cmd_str):
                response = resp
                break

        if isinstance(response, Exception):
            raise response
        return response.to_completed_process()

    @property
    def calls(self) -> List[CommandCall]:
        return self._call_history

    @property
    def commands(self) -> List[str]:
        return [c.full_command_str for c in self._call_history]

    def was_called_with(self, fragment: str) -> bool:
        return any(fragment in c for c in self.commands)

    def calls_matching(self, pattern: str) -> List[CommandCall]:
        regex = re.compile(pattern)
        return [c for c in self._call_history if regex.search(c.full_command_str)]

    def index_of(self, pattern: str) -> int:
        regex = re.compile(pattern)
        for i, c in enumerate(self.commands):
            if regex.search(c):
                return i
        raise AssertionError(f"no command matching {pattern!r} in {self.commands}")


@pytest.fixture
def commands(monkeypatch):
    """Intercept every subprocess.run call made through l5dsuite.shell."""
    mocker = CommandMocker()
    monkeypatch.setattr("l5dsuite.shell.subprocess.run", mocker.mock_run)
    return mocker


# =============================================================================
# Harness Fixtures
# =============================================================================

@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """A minimal linkerd-like repository layout."""
    root = tmp_path / "repo"
    for sub in ("bin", "test/configs", "test/testdata", "charts/linkerd2"):
        (root / sub).mkdir(parents=True)
    return root


@pytest.fixture
def linkerd_bin(tmp_path: Path) -> Path:
    """An executable stand-in for the linkerd CLI (never actually run)."""
    path = tmp_path / "linkerd"
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def make_ctx(repo_root, linkerd_bin):
    """Factory for a HarnessContext with pinned tool names and image tag."""

    def factory(config_overrides: Optional[dict] = None, **option_overrides) -> HarnessContext:
        options = {
            "linkerd_path": str(linkerd_bin),
            "root": repo_root,
        }
        options.update(option_overrides)

        config = load_config(environ={})
        set_value(config, "kind.binary", "kind")
        set_value(config, "helm.binary", "helm")
        set_value(config, "images.tag", "git-abcd1234")
        for path, value in (config_overrides or {}).items():
            set_value(config, path, value)

        return HarnessContext(options=HarnessOptions(**options), config=config)

    return factory


@pytest.fixture
def ctx(make_ctx) -> HarnessContext:
    return make_ctx()
