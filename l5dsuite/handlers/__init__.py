"""
Test case handlers.

Each handler is a function `execute(ctx) -> StepResult` that runs one named
test case against an already prepared cluster. Failures raise HarnessError.
"""

import sys

from . import upgrade, helm, uninstall, deep, external_issuer, cluster_domain

# Run when no single test is requested, in this order.
TEST_NAMES = ("upgrade", "helm", "helm-upgrade", "uninstall", "deep", "external-issuer")

HANDLERS = {
    "upgrade": upgrade.execute,
    "helm": helm.execute,
    "helm-upgrade": helm.execute_upgrade,
    "uninstall": uninstall.execute,
    "deep": deep.execute,
    "external-issuer": external_issuer.execute,
    "cluster-domain": cluster_domain.execute,
}

# KinD cluster config (test/configs/<name>.yaml) per test; default otherwise.
TEST_CONFIGS = {
    "cluster-domain": "cluster-domain",
}


def get_test_config(name: str) -> str:
    return TEST_CONFIGS.get(name, "default")


def get_handler(name: str):
    """Return the handler for a test name, or None if unknown."""
    return HANDLERS.get(name)


def describe(name: str) -> str:
    """First docstring line of the handler, or of its module."""
    handler = HANDLERS.get(name)
    if handler is None:
        return ""
    doc = handler.__doc__ or sys.modules[handler.__module__].__doc__ or ""
    lines = doc.strip().splitlines()
    return lines[0] if lines else ""


__all__ = ["TEST_NAMES", "HANDLERS", "get_test_config", "get_handler", "describe"]
