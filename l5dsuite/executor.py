"""
Test sequencing.

For each test case: validate the linkerd binary, create a KinD cluster and
load images into it (unless --skip-kind-create), check the cluster is
reachable and free of Linkerd resources, run the test handler, then delete
the cluster or clean Linkerd resources out of the existing one.

The first failure stops the run. The failing test's cluster is left in
place for inspection.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from rich.panel import Panel

from .context import HarnessContext, HarnessError, StepResult, console
from .models import RunSummary, TestResult, TestStatus
from . import cluster, handlers, images, linkerd, reporter

logger = logging.getLogger(__name__)


class TestExecutor:
    """Runs named test cases one after the other."""

    __test__ = False

    def __init__(
        self,
        ctx: HarnessContext,
        handler_lookup: Callable[[str], Optional[Callable[[HarnessContext], StepResult]]] = handlers.get_handler,
    ):
        self.ctx = ctx
        self.handler_lookup = handler_lookup

    def start_test(self, name: str, config: str) -> StepResult:
        """
        Prepare a cluster, run one test case and tear the cluster down.

        Raises:
            HarnessError: on any failed step
        """
        ctx = self.ctx
        handler = self.handler_lookup(name)
        if handler is None:
            raise HarnessError(f"unknown test: {name}")

        linkerd.check_linkerd_binary(ctx)

        if not ctx.options.skip_kind_create:
            cluster.create_cluster(ctx, name, config)
            images.load_images(ctx, name)

        cluster.check_cluster(ctx)

        result = handler(ctx)
        if not result.success:
            raise HarnessError(result.error or f"{name} test failed", exit_code=result.exit_code)

        if not ctx.options.skip_kind_create:
            cluster.delete_cluster(ctx, name)
        else:
            cluster.cleanup_cluster(ctx)

        return result

    def execute(self, name: str) -> TestResult:
        """Run one test case and record its outcome."""
        config = handlers.get_test_config(name)
        result = TestResult(name=name, config=config, status=TestStatus.RUNNING, started_at=datetime.now())

        console.print(Panel(f"[bold]{name}[/bold] [dim](config: {config})[/dim]", expand=False))
        try:
            self.start_test(name, config)
            result.status = TestStatus.PASSED
            result.exit_code = 0
        except HarnessError as e:
            if e.annotate:
                reporter.report_failure(e.message)
            result.status = TestStatus.FAILED
            result.error_message = e.message
            result.exit_code = e.exit_code
            logger.debug("%s failed with exit code %d", name, e.exit_code)
        finally:
            result.finished_at = datetime.now()
            result.duration_ms = int((result.finished_at - result.started_at).total_seconds() * 1000)

        return result

    def run(self, names: Iterable[str]) -> RunSummary:
        """
        Run test cases in order, stopping at the first failure.

        Tests after a failure are recorded as skipped.
        """
        summary = RunSummary(started_at=datetime.now(), skip_kind_create=self.ctx.options.skip_kind_create)
        failed = False

        for name in names:
            if failed:
                summary.tests.append(
                    TestResult(name=name, config=handlers.get_test_config(name), status=TestStatus.SKIPPED)
                )
                continue

            result = self.execute(name)
            summary.tests.append(result)
            failed = not result.passed

        summary.complete()
        return summary

    @staticmethod
    def exit_code(summary: RunSummary) -> int:
        """Exit code of the first failed test, or 0."""
        for test in summary.tests:
            if test.status == TestStatus.FAILED:
                return test.exit_code or 1
        return 0
