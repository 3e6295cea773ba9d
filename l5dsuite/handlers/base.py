"""
Helpers shared by test case handlers.
"""

import logging
import os
from typing import Sequence

from rich.markup import escape

from ..context import HarnessContext, HarnessError, StepResult, console
from .. import shell

logger = logging.getLogger(__name__)


def success(message: str = "") -> StepResult:
    return StepResult(exit_code=0, stdout=message, success=True)


def failure(message: str, exit_code: int = 1) -> StepResult:
    return StepResult(exit_code=exit_code, success=False, error=message)


def suite_file(ctx: HarnessContext, relative: str) -> str:
    return str(ctx.test_directory / relative)


def run_test(ctx: HarnessContext, targets: str | Sequence[str], *params: str) -> StepResult:
    """
    Run go integration tests against the cluster.

    Args:
        targets: Test file or list of packages passed to go test
        params: Extra test flags

    Raises:
        HarnessError: when go test fails (exit 1, no annotation since go
                      test reports its own failures)
    """
    if isinstance(targets, str):
        targets = [targets]
    targets = list(targets)

    console.print(
        escape(f"Test script: [{os.path.basename(targets[0])}] Params: [{' '.join(params)}]")
    )

    cmd = [
        ctx.tool("go"), "test", "--failfast", "--mod=readonly",
        *targets,
        f"--linkerd={ctx.linkerd_path}",
        f"--k8s-context={ctx.kube_context}",
        "--integration-tests",
        *params,
    ]
    result = shell.run(
        cmd,
        capture=False,
        env={"GO111MODULE": "on"},
        cwd=str(ctx.root),
        timeout=ctx.timeout,
    )
    if not result.success:
        logger.debug("go test failed with %d", result.exit_code)
        raise HarnessError(None, exit_code=1, annotate=False)
    return result


def go_list(ctx: HarnessContext, pattern: str) -> list[str]:
    """List go packages matching pattern."""
    result = shell.run([ctx.tool("go"), "list", pattern], cwd=str(ctx.root), timeout=ctx.timeout)
    shell.check(result, f"error listing go packages under {pattern}")
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]
