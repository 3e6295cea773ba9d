"""Upgrade the latest stable release to the build under test."""

from ..context import HarnessContext, StepResult
from ..linkerd import install_stable, latest_stable
from .base import run_test, suite_file


def execute(ctx: HarnessContext) -> StepResult:
    stable_version = latest_stable(ctx)
    install_stable(ctx)
    return run_test(
        ctx,
        suite_file(ctx, "install_test.go"),
        f"--upgrade-from-version={stable_version}",
    )
