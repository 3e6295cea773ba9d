"""Install with an externally managed identity issuer."""

from ..context import HarnessContext, StepResult
from .base import run_test, suite_file


def execute(ctx: HarnessContext) -> StepResult:
    run_test(ctx, suite_file(ctx, "install_test.go"), "--external-issuer=true")
    return run_test(
        ctx,
        suite_file(ctx, "externalissuer/external_issuer_test.go"),
        "--external-issuer=true",
    )
