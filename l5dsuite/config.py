"""
Harness configuration.

Defaults are built in; an optional YAML file deep-merges over them and a few
environment variables override single values.

Example l5dsuite.yaml:
    kind:
      wait: 300s
    images:
      registry: gcr.io/linkerd-io
      workers: 4
    execution:
      timeout: 1800
"""

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml


CONFIG_FILENAME = "l5dsuite.yaml"

DEFAULT_CONFIG = {
    "kind": {
        "binary": None,
        "wait": "300s",
    },
    "kubectl": {
        "binary": "kubectl",
        "request_timeout": "5s",
    },
    "helm": {
        "binary": None,
        "repo_name": "linkerd",
        "repo_url": "https://helm.linkerd.io/stable",
        "release": "helm-test",
        "chart": "charts/linkerd2",
        "stable_chart": "linkerd/linkerd2",
    },
    "images": {
        "registry": "gcr.io/linkerd-io",
        "tag": None,
        "names": ["proxy", "controller", "web", "grafana", "cni-plugin", "debug"],
        "archive_dir": "image-archives",
        "workers": 4,
    },
    "linkerd": {
        "version_url": "https://versioncheck.linkerd.io/version.json",
        "install_url": "https://run.linkerd.io/install",
        "upgrade_namespace": "upgrade-test",
    },
    "go": {
        "binary": "go",
    },
    "execution": {
        # seconds; None lets go test and kind run unbounded
        "timeout": None,
    },
}

# environment variable -> dot-notation config path
ENV_OVERRIDES = {
    "DOCKER_REGISTRY": "images.registry",
    "TAG": "images.tag",
}


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_value(config: dict, path: str, default: Any = None) -> Any:
    """Resolve a dot-notation path (e.g. "images.registry") in a config dict."""
    value = config
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return default
    return value


def set_value(config: dict, path: str, value: Any) -> None:
    """Set a dot-notation path, creating intermediate sections."""
    parts = path.split(".")
    target = config
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def load_config(path: Optional[Path] = None, environ: Optional[dict] = None) -> dict:
    """
    Load harness configuration.

    Args:
        path: YAML file to merge over the defaults. Missing files are an error
              only when the path was given explicitly by the caller.
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Merged configuration dictionary.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"{path}: top-level YAML value must be a mapping")
        config = _deep_merge(config, loaded)

    env = os.environ if environ is None else environ
    for var, config_path in ENV_OVERRIDES.items():
        if env.get(var):
            set_value(config, config_path, env[var])

    timeout = get_value(config, "execution.timeout")
    if timeout is not None:
        try:
            set_value(config, "execution.timeout", int(timeout))
        except (TypeError, ValueError):
            raise ValueError(f"execution.timeout must be a number of seconds, got {timeout!r}") from None

    return config


def find_config(root: Path) -> Optional[Path]:
    """Return the default config file under root, if there is one."""
    candidate = root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


@dataclass(frozen=True)
class HarnessOptions:
    """Options from the command line."""
    linkerd_path: str
    root: Path
    images: bool = False
    images_host: Optional[str] = None
    skip_kind_create: bool = False
