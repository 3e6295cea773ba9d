"""
Linkerd-specific setup: validating the binary under test, installing the
latest stable release for upgrade tests, and preparing Helm.
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path

import requests
from rich.markup import escape

from .context import HarnessContext, HarnessError, console
from . import shell

logger = logging.getLogger(__name__)

STABLE_VERSION_PATTERN = re.compile(r"stable-\d+\.\d+\.\d+")


def check_linkerd_binary(ctx: HarnessContext) -> None:
    """
    Verify the linkerd binary under test.

    It must be an absolute path to an executable that runs
    `linkerd version --client` successfully.
    """
    path = ctx.linkerd_path
    console.print("Checking the linkerd binary...", end="")

    if not os.path.isabs(path):
        console.print(escape(f"\n[{path}] is not an absolute path"))
        raise HarnessError(f"{path} is not an absolute path", annotate=False)

    if not (os.path.isfile(path) and os.access(path, os.X_OK)):
        console.print(escape(f"\n[{path}] does not exist or is not executable"))
        raise HarnessError(f"{path} does not exist or is not executable", annotate=False)

    result = shell.run([path, "version", "--client"], timeout=ctx.timeout)
    shell.check(result, "error running linkerd version command")
    console.print(escape("[ok]"))


def latest_stable(ctx: HarnessContext) -> str:
    """Return the latest stable version, e.g. "stable-2.7.1"."""
    url = ctx.setting("linkerd.version_url")
    try:
        resp = requests.get(url, timeout=30)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HarnessError(f"error fetching latest stable version: {e}") from e

    match = STABLE_VERSION_PATTERN.search(resp.text)
    if not match:
        raise HarnessError(f"no stable version found at {url}")

    logger.debug("latest stable: %s", match.group(0))
    return match.group(0)


def download_stable(ctx: HarnessContext) -> str:
    """
    Install the latest stable CLI into a fresh temporary HOME.

    Returns:
        Path to the downloaded linkerd binary.
    """
    url = ctx.setting("linkerd.install_url")
    try:
        resp = requests.get(url, timeout=60)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HarnessError(f"install_stable() - downloading install script failed: {e}") from e

    home = tempfile.mkdtemp(prefix="l5dbin.")
    result = shell.run(["sh"], input=resp.text, env={"HOME": home}, timeout=ctx.timeout)
    shell.check(result, "install_stable() - running install script failed")

    binary = Path(home) / ".linkerd2" / "bin" / "linkerd"
    if not binary.is_file():
        raise HarnessError(f"install_stable() - {binary} not found after install")
    return str(binary)


def install_stable(ctx: HarnessContext) -> None:
    """
    Install the latest stable control plane plus the app the upgrade test
    uses to verify that the upgrade does not break the data plane.
    """
    stable = download_stable(ctx)
    namespace = ctx.setting("linkerd.upgrade_namespace", "upgrade-test")

    install = [stable, "install"]
    apply = ctx.kubectl("apply", "-f", "-")
    shell.trace(install, apply)
    result = shell.pipe(install, apply, timeout=ctx.timeout)
    shell.echo_output(result)
    shell.check(result, "install_stable() - installing stable failed")

    check = [stable, "check"]
    shell.trace(check)
    result = shell.run(check, timeout=ctx.timeout)
    shell.echo_output(result)
    shell.check(result, "install_stable() - linkerd check failed")

    # namespace may already exist on a reused cluster
    shell.run(ctx.kubectl("create", "namespace", namespace))
    shell.run(ctx.kubectl("label", "namespaces", namespace, "linkerd.io/is-test-data-plane=true"))

    inject = [stable, "inject", str(ctx.test_directory / "testdata" / "upgrade_test.yaml")]
    apply = ctx.kubectl("apply", f"--namespace={namespace}", "-f", "-")
    shell.trace(inject, apply)
    result = shell.pipe(inject, apply, timeout=ctx.timeout)
    shell.echo_output(result)
    shell.check(result, "install_stable() - linkerd inject failed")


@dataclass
class HelmSetup:
    path: str
    chart: str
    release: str
    stable_chart: str


def setup_helm(ctx: HarnessContext) -> HelmSetup:
    """Build the local chart and register the stable chart repository."""
    helm = ctx.tool("helm")
    chart = str((ctx.root / ctx.setting("helm.chart")).resolve())

    result = shell.run([helm, "dependency", "update", chart], timeout=ctx.timeout)
    shell.check(result, "error building Helm chart")

    repo_add = [helm]
    if ctx.kube_context:
        repo_add.append(f"--kube-context={ctx.kube_context}")
    repo_add += ["repo", "add", ctx.setting("helm.repo_name"), ctx.setting("helm.repo_url")]
    shell.check(shell.run(repo_add, timeout=ctx.timeout), "error setting up Helm")

    return HelmSetup(
        path=helm,
        chart=chart,
        release=ctx.setting("helm.release"),
        stable_chart=ctx.setting("helm.stable_chart"),
    )
