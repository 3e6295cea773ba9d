"""
Helm installation tests.

helm: install the local chart.
helm-upgrade: install the latest stable chart from the repository, then
upgrade it to the local chart.
"""

from ..context import HarnessContext, StepResult
from ..linkerd import latest_stable, setup_helm
from .base import run_test, suite_file


def execute(ctx: HarnessContext) -> StepResult:
    """Install the control plane from the local Helm chart."""
    helm = setup_helm(ctx)
    return run_test(
        ctx,
        suite_file(ctx, "install_test.go"),
        f"--helm-path={helm.path}",
        f"--helm-chart={helm.chart}",
        f"--helm-release={helm.release}",
    )


def execute_upgrade(ctx: HarnessContext) -> StepResult:
    """Upgrade the stable Helm release to the local chart."""
    stable_version = latest_stable(ctx)
    helm = setup_helm(ctx)
    return run_test(
        ctx,
        suite_file(ctx, "install_test.go"),
        f"--helm-path={helm.path}",
        f"--helm-chart={helm.chart}",
        f"--helm-stable-chart={helm.stable_chart}",
        f"--helm-release={helm.release}",
        f"--upgrade-helm-from-version={stable_version}",
    )
