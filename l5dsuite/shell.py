"""
External command execution.

Every call to kind, kubectl, helm, go and linkerd goes through run(), which
never raises for a failing command: it returns a StepResult. check() turns a
failed result into a HarnessError carrying the failure message and the
command's exit code.
"""

import logging
import os
import shlex
import subprocess
from typing import Optional, Sequence

from rich.markup import escape

from .context import StepResult, HarnessError, console

logger = logging.getLogger(__name__)


def format_command(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in cmd)


def run(
    cmd: Sequence[str],
    *,
    capture: bool = True,
    input: Optional[str] = None,
    env: Optional[dict] = None,
    cwd: Optional[str] = None,
    timeout: Optional[int] = None,
) -> StepResult:
    """
    Run an external command.

    Args:
        cmd: Command and arguments
        capture: Capture stdout/stderr; when False output streams to the terminal
                 with stderr folded into stdout
        input: Text passed on stdin
        env: Extra environment variables layered over os.environ
        cwd: Working directory
        timeout: Seconds before the command is killed

    Returns:
        StepResult with exit code and captured output.
    """
    cmd = [str(part) for part in cmd]
    full_env = None
    if env:
        full_env = {**os.environ, **env}

    logger.debug("exec: %s", format_command(cmd))

    try:
        if capture:
            result = subprocess.run(
                cmd,
                input=input,
                capture_output=True,
                text=True,
                env=full_env,
                cwd=cwd,
                timeout=timeout,
            )
        else:
            result = subprocess.run(
                cmd,
                input=input,
                stderr=subprocess.STDOUT,
                text=True,
                env=full_env,
                cwd=cwd,
                timeout=timeout,
            )
    except FileNotFoundError:
        logger.debug("exec: %s not found", cmd[0])
        return StepResult(
            exit_code=127,
            success=False,
            error=f"{cmd[0]}: command not found",
        )
    except PermissionError as e:
        logger.debug("exec: %s not executable", cmd[0])
        return StepResult(
            exit_code=126,
            success=False,
            error=f"{cmd[0]}: permission denied: {e}",
        )
    except OSError as e:
        logger.debug("exec: %s failed to start: %s", cmd[0], e)
        return StepResult(
            exit_code=126,
            success=False,
            error=f"{cmd[0]}: {e}",
        )
    except subprocess.TimeoutExpired:
        logger.debug("exec: %s timed out after %ss", cmd[0], timeout)
        return StepResult(
            exit_code=124,
            success=False,
            error=f"{cmd[0]} timed out after {timeout}s",
        )

    logger.debug("exit %d: %s", result.returncode, cmd[0])
    return StepResult(
        exit_code=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        success=result.returncode == 0,
        error=None if result.returncode == 0 else (result.stderr or "").strip() or None,
    )


def pipe(
    producer: Sequence[str],
    consumer: Sequence[str],
    *,
    timeout: Optional[int] = None,
) -> StepResult:
    """
    Feed the stdout of producer into consumer, like `producer | consumer`.

    The producer's failure is returned as-is; the consumer is not started.
    """
    produced = run(producer, timeout=timeout)
    if not produced.success:
        return produced
    return run(consumer, input=produced.stdout, timeout=timeout)


def trace(cmd: Sequence[str], consumer: Optional[Sequence[str]] = None) -> None:
    """Echo a command the way `set -x` does."""
    line = format_command(cmd)
    if consumer is not None:
        line = f"{line} | {format_command(consumer)}"
    console.print(f"[dim]+ {escape(line)}[/dim]")


def echo_output(result: StepResult) -> None:
    """Print captured output of a traced command."""
    for text in (result.stdout, result.stderr):
        if text and text.strip():
            console.print(escape(text.rstrip()))


def check(result: StepResult, message: str) -> StepResult:
    """
    Abort the run if result failed.

    Raises:
        HarnessError: carrying message and the command's exit code
    """
    if not result.success:
        if result.error:
            logger.debug("%s: %s", message, result.error)
        raise HarnessError(message, exit_code=result.exit_code)
    return result
