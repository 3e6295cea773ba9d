"""
Shared execution context.

Holds the step result type returned by command helpers and handlers, the
error raised when a step must abort the run, and the per-run context that
carries options, configuration and resolved paths.
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console

from .config import HarnessOptions, get_value

console = Console(highlight=False)


@dataclass
class StepResult:
    """Result of a single external command or handler step."""
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    success: bool = True
    error: Optional[str] = None


class HarnessError(Exception):
    """
    Raised when a step fails and the run has to stop.

    Args:
        message: Failure description shown to the user (None for steps that
                 report their own failures, such as go test)
        exit_code: Process exit code to terminate with
        annotate: Whether the message is printed as a failure annotation
    """

    def __init__(self, message: Optional[str], exit_code: int = 1, annotate: bool = True):
        super().__init__(message or f"exit status {exit_code}")
        self.message = message
        self.exit_code = exit_code if exit_code else 1
        self.annotate = annotate and message is not None


@dataclass
class HarnessContext:
    """
    Per-run state shared by the cluster helpers and test handlers.

    kube_context is empty until a KinD cluster is created; kubectl and
    go test then fall back to the current default context.
    """
    options: HarnessOptions
    config: dict
    kube_context: str = ""

    @property
    def root(self) -> Path:
        return self.options.root

    @property
    def bindir(self) -> Path:
        return self.root / "bin"

    @property
    def test_directory(self) -> Path:
        return self.root / "test"

    @property
    def linkerd_path(self) -> str:
        return self.options.linkerd_path

    def setting(self, path: str, default=None):
        return get_value(self.config, path, default)

    def tool(self, name: str) -> str:
        """
        Resolve an external tool.

        Order: explicit `<name>.binary` config, the repo's pinned wrapper in
        bin/, then PATH lookup by name.
        """
        configured = self.setting(f"{name}.binary")
        if configured:
            return str(configured)

        pinned = self.bindir / name
        if pinned.is_file() and os.access(pinned, os.X_OK):
            return str(pinned)

        return shutil.which(name) or name

    def kubectl(self, *args: str) -> list[str]:
        """Build a kubectl command bound to the current context."""
        cmd = [self.tool("kubectl")]
        if self.kube_context:
            cmd.append(f"--context={self.kube_context}")
        cmd.extend(args)
        return cmd

    @property
    def timeout(self) -> Optional[int]:
        return self.setting("execution.timeout")
