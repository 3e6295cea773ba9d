"""
Bounded thread pool for running independent external commands concurrently.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed

from .context import StepResult


class WorkerPool:
    """
    Thread pool used as a context manager.

    Used for image loading, where each item is a separate `kind load` call.
    """

    def __init__(self, max_workers: int = 1):
        self.max_workers = max(1, max_workers)
        self.executor: ThreadPoolExecutor | None = None

    def __enter__(self):
        self.executor = ThreadPoolExecutor(max_workers=self.max_workers)
        return self

    def __exit__(self, *args):
        if self.executor:
            self.executor.shutdown(wait=True, cancel_futures=True)

    def map_unordered(self, fn, items):
        """
        Execute fn for each item, yielding (item, StepResult) as they complete.

        Results may be returned in any order. An exception raised by fn is
        converted into a failed StepResult for that item.
        """
        if self.executor is None:
            raise RuntimeError("WorkerPool not entered as context manager")

        futures = {self.executor.submit(fn, item): item for item in items}
        for future in as_completed(futures):
            item = futures[future]
            try:
                yield item, future.result()
            except Exception as e:
                yield item, StepResult(exit_code=1, success=False, error=str(e))
