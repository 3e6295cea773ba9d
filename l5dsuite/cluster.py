"""
KinD cluster lifecycle and cluster health checks.
"""

import json
import logging

from jsonpath_ng import parse as jsonpath_parse
from rich.markup import escape

from .context import HarnessContext, HarnessError, console
from . import shell

logger = logging.getLogger(__name__)

CONTROL_PLANE_LABEL = "linkerd.io/control-plane-ns"
TEST_DATA_PLANE_LABEL = "linkerd.io/is-test-data-plane"

LINKERD_RESOURCE_KINDS = (
    "all,clusterrole,clusterrolebinding,mutatingwebhookconfigurations,"
    "validatingwebhookconfigurations,psp,crd"
)

CLEANUP_RESOURCE_KINDS = (
    "ns,clusterrole,clusterrolebinding,mutatingwebhookconfigurations,"
    "validatingwebhookconfigurations,psp,crd,apiservices"
)

_resource_kinds = jsonpath_parse("$.items[*].kind")
_resource_names = jsonpath_parse("$.items[*].metadata.name")


def kind_context(name: str) -> str:
    return f"kind-{name}"


def create_cluster(ctx: HarnessContext, name: str, config: str) -> None:
    """Create a KinD cluster and bind the run to its context."""
    config_path = ctx.test_directory / "configs" / f"{config}.yaml"
    result = shell.run(
        [
            ctx.tool("kind"), "create", "cluster",
            "--name", name,
            "--config", str(config_path),
            "--wait", ctx.setting("kind.wait", "300s"),
        ],
        capture=False,
        timeout=ctx.timeout,
    )
    shell.check(result, "error creating KinD cluster")
    ctx.kube_context = kind_context(name)


def delete_cluster(ctx: HarnessContext, name: str) -> None:
    """Delete a KinD cluster. Failures are logged, not raised."""
    result = shell.run(
        [ctx.tool("kind"), "delete", "cluster", "--name", name],
        capture=False,
        timeout=ctx.timeout,
    )
    if not result.success:
        logger.warning("kind delete cluster %s exited with %d", name, result.exit_code)


def cleanup_cluster(ctx: HarnessContext) -> None:
    """Remove Linkerd control plane and test namespaces from the current context."""
    steps = [
        ctx.kubectl("delete", "ns", "-l", TEST_DATA_PLANE_LABEL, "--ignore-not-found"),
        ctx.kubectl("delete", CLEANUP_RESOURCE_KINDS, "-l", CONTROL_PLANE_LABEL, "--ignore-not-found"),
    ]
    for cmd in steps:
        shell.check(
            shell.run(cmd, timeout=ctx.timeout),
            "error removing existing Linkerd resources",
        )


def check_cluster(ctx: HarnessContext) -> None:
    check_if_k8s_reachable(ctx)
    check_if_l5d_exists(ctx)


def check_if_k8s_reachable(ctx: HarnessContext) -> None:
    console.print("Checking if there is a Kubernetes cluster available...", end="")
    timeout = ctx.setting("kubectl.request_timeout", "5s")
    result = shell.run(ctx.kubectl(f"--request-timeout={timeout}", "get", "ns"))
    shell.check(result, "error connecting to Kubernetes cluster")
    console.print(escape("[ok]"))


def parse_resource_names(output: str) -> list[str]:
    """
    Extract `kind/name` identifiers from `kubectl get -o json` output.

    Returns an empty list for empty output.
    """
    if not output.strip():
        return []
    data = json.loads(output)
    kinds = [m.value for m in _resource_kinds.find(data)]
    names = [m.value for m in _resource_names.find(data)]
    return [f"{kind.lower()}/{name}" for kind, name in zip(kinds, names)]


def find_linkerd_resources(ctx: HarnessContext) -> list[str]:
    result = shell.run(
        ctx.kubectl(
            "get", LINKERD_RESOURCE_KINDS,
            "-l", CONTROL_PLANE_LABEL,
            "--all-namespaces",
            "-o", "json",
        ),
        timeout=ctx.timeout,
    )
    # Unknown resource types (psp on Kubernetes >= 1.25) fail the whole
    # listing; that counts as "nothing found", stderr is shown as-is.
    if not result.success:
        logger.warning("listing Linkerd resources exited with %d", result.exit_code)
        if result.stderr:
            console.print(escape(f"\n{result.stderr.rstrip()}"))
        return []
    try:
        return parse_resource_names(result.stdout)
    except json.JSONDecodeError as e:
        raise HarnessError(f"unexpected kubectl output: {e}") from e


def check_if_l5d_exists(ctx: HarnessContext) -> None:
    console.print("Checking if Linkerd resources exist on cluster...", end="")
    resources = find_linkerd_resources(ctx)
    if resources:
        console.print("\nLinkerd resources exist on cluster:\n")
        console.print(escape("\n".join(resources)))
        console.print("\nHelp:\n    Run: [l5dsuite --cleanup]", markup=False)
        raise HarnessError("Linkerd resources exist on cluster", annotate=False)
    console.print(escape("[ok]"))
