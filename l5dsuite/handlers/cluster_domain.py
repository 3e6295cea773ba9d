"""Install into a cluster using a custom cluster domain."""

from ..context import HarnessContext, StepResult
from .base import run_test, suite_file

CLUSTER_DOMAIN = "custom.domain"


def execute(ctx: HarnessContext) -> StepResult:
    return run_test(ctx, suite_file(ctx, "install_test.go"), f"--cluster-domain={CLUSTER_DOMAIN}")
