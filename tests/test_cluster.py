"""Tests for KinD cluster lifecycle and cluster checks."""

import json

import pytest

from conftest import CommandResponse
from l5dsuite import cluster
from l5dsuite.context import HarnessError


def _kubectl_list(*items):
    return json.dumps({
        "apiVersion": "v1",
        "kind": "List",
        "items": [
            {"kind": kind, "metadata": {"name": name}} for kind, name in items
        ],
    })


def test_create_cluster_sets_context(commands, ctx):
    cluster.create_cluster(ctx, "helm", "default")

    cmd = commands.calls[0].command
    assert cmd[:4] == ["kind", "create", "cluster", "--name"]
    assert cmd[4] == "helm"
    assert cmd[cmd.index("--config") + 1] == str(ctx.test_directory / "configs" / "default.yaml")
    assert cmd[cmd.index("--wait") + 1] == "300s"
    assert ctx.kube_context == "kind-helm"


def test_create_cluster_failure(commands, ctx):
    commands.fail(r"kind create cluster", returncode=4)

    with pytest.raises(HarnessError) as exc_info:
        cluster.create_cluster(ctx, "helm", "default")

    assert exc_info.value.message == "error creating KinD cluster"
    assert exc_info.value.exit_code == 4
    assert ctx.kube_context == ""


def test_delete_cluster_ignores_failure(commands, ctx):
    commands.fail(r"kind delete cluster")

    cluster.delete_cluster(ctx, "deep")

    assert commands.was_called_with("kind delete cluster --name deep")


def test_kubectl_uses_context_once_set(commands, ctx):
    cluster.check_if_k8s_reachable(ctx)
    ctx.kube_context = "kind-deep"
    cluster.check_if_k8s_reachable(ctx)

    assert commands.commands[0] == "kubectl --request-timeout=5s get ns"
    assert commands.commands[1] == "kubectl --context=kind-deep --request-timeout=5s get ns"


def test_unreachable_cluster(commands, ctx):
    commands.fail(r"get ns$")

    with pytest.raises(HarnessError, match="error connecting to Kubernetes cluster"):
        cluster.check_if_k8s_reachable(ctx)


def test_parse_resource_names():
    output = _kubectl_list(("Deployment", "linkerd-controller"), ("ClusterRole", "linkerd-identity"))
    assert cluster.parse_resource_names(output) == [
        "deployment/linkerd-controller",
        "clusterrole/linkerd-identity",
    ]


def test_parse_resource_names_empty():
    assert cluster.parse_resource_names("") == []
    assert cluster.parse_resource_names(_kubectl_list()) == []


def test_l5d_absent(commands, ctx):
    commands.register(r"get all,", CommandResponse(stdout=_kubectl_list()))

    cluster.check_if_l5d_exists(ctx)

    cmd = commands.calls[0].command
    assert "-l" in cmd and cmd[cmd.index("-l") + 1] == "linkerd.io/control-plane-ns"
    assert "--all-namespaces" in cmd
    assert cmd[-2:] == ["-o", "json"]


def test_l5d_present_aborts_without_annotation(commands, ctx, capsys):
    commands.register(
        r"get all,",
        CommandResponse(stdout=_kubectl_list(("Namespace", "linkerd"))),
    )

    with pytest.raises(HarnessError) as exc_info:
        cluster.check_if_l5d_exists(ctx)

    assert exc_info.value.exit_code == 1
    assert not exc_info.value.annotate
    out = capsys.readouterr().out
    assert "namespace/linkerd" in out
    assert "l5dsuite --cleanup" in out


def test_l5d_listing_failure_counts_as_absent(commands, ctx, capsys):
    commands.fail(
        r"get all,",
        stderr='error: the server doesn\'t have a resource type "psp"',
    )

    cluster.check_if_l5d_exists(ctx)

    out = capsys.readouterr().out
    assert 'resource type "psp"' in out
    assert out.rstrip().endswith("[ok]")


def test_l5d_check_bad_json(commands, ctx):
    commands.register(r"get all,", CommandResponse(stdout="not json"))

    with pytest.raises(HarnessError, match="unexpected kubectl output"):
        cluster.check_if_l5d_exists(ctx)


def test_check_cluster_runs_both_checks(commands, ctx):
    cluster.check_cluster(ctx)
    assert commands.index_of(r"get ns$") < commands.index_of(r"get all,")


def test_cleanup_deletes_test_namespaces_first(commands, ctx):
    ctx.kube_context = "kind-upgrade"

    cluster.cleanup_cluster(ctx)

    assert commands.commands == [
        "kubectl --context=kind-upgrade delete ns -l linkerd.io/is-test-data-plane --ignore-not-found",
        "kubectl --context=kind-upgrade delete " + cluster.CLEANUP_RESOURCE_KINDS
        + " -l linkerd.io/control-plane-ns --ignore-not-found",
    ]


def test_cleanup_failure(commands, ctx):
    commands.fail(r"delete ns -l", returncode=5)

    with pytest.raises(HarnessError) as exc_info:
        cluster.cleanup_cluster(ctx)

    assert exc_info.value.message == "error removing existing Linkerd resources"
    assert exc_info.value.exit_code == 5
