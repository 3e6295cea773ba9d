"""Uninstall the control plane and verify nothing is left behind."""

from ..context import HarnessContext, StepResult
from .base import run_test, suite_file


def execute(ctx: HarnessContext) -> StepResult:
    return run_test(ctx, suite_file(ctx, "uninstall/uninstall_test.go"), "--uninstall=true")
