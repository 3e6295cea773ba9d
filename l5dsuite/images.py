"""
Loading control plane images into a KinD cluster.

Three modes:
- default: `kind load docker-image` from the local docker daemon
- archives: `kind load image-archive` from <archive_dir>/<name>.tar
- remote host: images are first saved from a remote docker daemon into
  the archive directory, then loaded as archives
"""

import logging
from pathlib import Path

import docker
from docker.errors import DockerException

from .context import HarnessContext, StepResult, console
from .pool import WorkerPool
from . import shell

logger = logging.getLogger(__name__)


def image_tag(ctx: HarnessContext) -> str:
    """
    Tag of the images under test.

    Configured tag (or TAG env) wins; otherwise `git-<sha8>` of the repo HEAD.
    """
    tag = ctx.setting("images.tag")
    if tag:
        return str(tag)

    result = shell.run(["git", "rev-parse", "--short=8", "HEAD"], cwd=str(ctx.root))
    shell.check(result, "error computing image tag from git HEAD")
    return f"git-{result.stdout.strip()}"


def image_ref(ctx: HarnessContext, name: str, tag: str) -> str:
    registry = ctx.setting("images.registry").rstrip("/")
    return f"{registry}/{name}:{tag}"


def archive_dir(ctx: HarnessContext) -> Path:
    path = Path(ctx.setting("images.archive_dir", "image-archives"))
    return path if path.is_absolute() else ctx.root / path


def save_remote_image(host: str, ref: str, dest: Path) -> StepResult:
    """Save an image from a remote docker daemon into a tar archive."""
    try:
        client = docker.DockerClient(base_url=host)
        try:
            image = client.images.get(ref)
            with open(dest, "wb") as f:
                for chunk in image.save(named=True):
                    f.write(chunk)
        finally:
            client.close()
    except (DockerException, OSError) as e:
        return StepResult(exit_code=1, success=False, error=f"docker save {ref} from {host}: {e}")

    return StepResult(stdout=str(dest))


def _load_one(ctx: HarnessContext, cluster: str, name: str, tag: str) -> StepResult:
    kind = ctx.tool("kind")

    if not ctx.options.images:
        return shell.run(
            [kind, "load", "docker-image", image_ref(ctx, name, tag), "--name", cluster],
            timeout=ctx.timeout,
        )

    archive = archive_dir(ctx) / f"{name}.tar"
    if ctx.options.images_host:
        saved = save_remote_image(ctx.options.images_host, image_ref(ctx, name, tag), archive)
        if not saved.success:
            return saved

    return shell.run(
        [kind, "load", "image-archive", str(archive), "--name", cluster],
        timeout=ctx.timeout,
    )


def load_images(ctx: HarnessContext, cluster: str) -> None:
    """
    Load every configured image into the cluster.

    Raises:
        HarnessError: on the first image that fails to load
    """
    names = list(ctx.setting("images.names", []))
    if not names:
        return

    tag = image_tag(ctx)
    if ctx.options.images and ctx.options.images_host:
        archive_dir(ctx).mkdir(parents=True, exist_ok=True)

    mode = "image-archive" if ctx.options.images else "docker-image"
    console.print(f"[dim]Loading {len(names)} image(s) into {cluster} ({mode}, tag {tag})[/dim]")

    with WorkerPool(max_workers=int(ctx.setting("images.workers", 1))) as pool:
        for name, result in pool.map_unordered(lambda n: _load_one(ctx, cluster, n, tag), names):
            if not result.success:
                logger.debug("loading %s failed: %s", name, result.error)
            shell.check(result, f"error loading image {name} into KinD")
            logger.debug("loaded %s", name)
