"""
Failure annotations and run reports.

Failures are printed as GitHub Actions error annotations when GH_ANNOTATION
is set, and as a plain `=== FAIL:` line otherwise.
"""

import json
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from rich.markup import escape

from .context import console
from .models import RunSummary, TestStatus


def format_failure(message: str, environ: Optional[dict] = None) -> str:
    env = os.environ if environ is None else environ
    if env.get("GH_ANNOTATION"):
        return f"::error::{message}"
    return f"\n=== FAIL: {message}"


def report_failure(message: str) -> None:
    console.print(escape(format_failure(message)), soft_wrap=True)


def write_json(summary: RunSummary, path: Path) -> Path:
    path.write_text(json.dumps(summary.to_dict(), indent=2))
    return path


def write_junit(summary: RunSummary, path: Path) -> Path:
    """Write a JUnit XML report, one testcase per test case."""
    suite = ET.Element(
        "testsuite",
        name="linkerd-integration",
        tests=str(len(summary.tests)),
        failures=str(summary.failed),
        skipped=str(summary.skipped),
        time=f"{(summary.duration_ms or 0) / 1000:.3f}",
        timestamp=summary.started_at.isoformat(),
    )

    for test in summary.tests:
        case = ET.SubElement(
            suite,
            "testcase",
            classname=f"l5dsuite.{test.config}",
            name=test.name,
            time=f"{test.duration:.3f}",
        )
        if test.status == TestStatus.FAILED:
            failure = ET.SubElement(
                case,
                "failure",
                message=test.error_message or f"exit status {test.exit_code}",
            )
            failure.text = test.error_message or ""
        elif test.status == TestStatus.SKIPPED:
            ET.SubElement(case, "skipped", message="not run after an earlier failure")

    tree = ET.ElementTree(suite)
    ET.indent(tree)
    tree.write(path, encoding="utf-8", xml_declaration=True)
    return path


def write_report(summary: RunSummary, path: Path) -> Path:
    """Write a report; `.xml` paths get JUnit XML, anything else JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".xml":
        return write_junit(summary, path)
    return write_json(summary, path)
