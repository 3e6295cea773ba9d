"""Install, then run every integration test package."""

from ..context import HarnessContext, StepResult
from .base import failure, go_list, run_test, suite_file


def execute(ctx: HarnessContext) -> StepResult:
    run_test(ctx, suite_file(ctx, "install_test.go"))

    # test/.../... matches packages in subdirectories only, not test/ itself
    packages = go_list(ctx, f"{ctx.test_directory}/.../...")
    if not packages:
        return failure(f"no test packages found under {ctx.test_directory}")
    return run_test(ctx, packages)
