"""
Reporter — 実行レポートの生成

FlowResult から report.json / report.html / junit.xml を出力する。
3 形式とも build_report() の辞書を元にする。
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from collections import Counter
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from .runner import FlowResult, StepResult

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

_SUITE_NAME = "pubflow"


def summarize(steps: Sequence[StepResult]) -> dict[str, int]:
    """ステップ結果の件数（total / passed / failed / skipped）を返す。"""
    counts = Counter(step.status for step in steps)
    return {
        "total": len(steps),
        "passed": counts["passed"],
        "failed": counts["failed"],
        "skipped": counts["skipped"],
    }


def build_report(result: FlowResult) -> dict[str, Any]:
    """FlowResult をレポート用の辞書に変換する。

    スクリーンショットのパスは artifacts_dir からの相対パス（POSIX 形式）にする。
    """
    return {
        "title": result.document_title,
        "status": result.status,
        "published_url": result.published_url,
        "verification": asdict(result.verification) if result.verification else None,
        "skip_reason": result.skip_reason,
        "failed_step": result.failed_step,
        "error": result.error,
        "duration_ms": result.duration_ms,
        "started_at": _isoformat(result.started_at),
        "finished_at": _isoformat(result.finished_at),
        "steps": [_step_entry(step, result.artifacts_dir) for step in result.steps],
        "summary": summarize(result.steps),
    }


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def _step_entry(step: StepResult, artifacts_dir: Optional[Path]) -> dict[str, Any]:
    screenshot = None
    if step.screenshot_path is not None:
        screenshot = step.screenshot_path
        if artifacts_dir is not None and screenshot.is_relative_to(artifacts_dir):
            screenshot = screenshot.relative_to(artifacts_dir)
        screenshot = screenshot.as_posix()
    return {
        "step_name": step.step_name,
        "step_index": step.step_index,
        "status": step.status,
        "duration_ms": step.duration_ms,
        "error": step.error,
        "screenshot_path": screenshot,
    }


class Reporter:
    """report.json / report.html / junit.xml の出力。"""

    def generate_json(self, result: FlowResult, output_dir: Path) -> Path:
        """report.json を出力する。

        Args:
            result: フロー実行結果
            output_dir: 出力先ディレクトリ（なければ作成）

        Returns:
            出力したファイルのパス
        """
        text = json.dumps(build_report(result), ensure_ascii=False, indent=2)
        return self._write(output_dir / "report.json", text, "JSON")

    def generate_html(self, result: FlowResult, output_dir: Path) -> Path:
        """templates/report.html.j2 で report.html を出力する。"""
        env = Environment(loader=FileSystemLoader(str(_TEMPLATES_DIR)), autoescape=True)
        html = env.get_template("report.html.j2").render(report=build_report(result))
        return self._write(output_dir / "report.html", html, "HTML")

    def generate_junit_xml(self, result: FlowResult, output_dir: Path) -> Path:
        """junit.xml を出力する。ステップ 1 つが testcase 1 つに対応する。"""
        summary = summarize(result.steps)
        root = ET.Element("testsuites")
        suite = ET.SubElement(root, "testsuite", {
            "name": _SUITE_NAME,
            "tests": str(summary["total"]),
            "failures": str(summary["failed"]),
            "skipped": str(summary["skipped"]),
            "time": _seconds(result.duration_ms),
        })
        for step in result.steps:
            self._append_testcase(suite, step, result.skip_reason)

        tree = ET.ElementTree(root)
        ET.indent(tree, space="  ")
        output_path = output_dir / "junit.xml"
        output_dir.mkdir(parents=True, exist_ok=True)
        tree.write(str(output_path), encoding="unicode", xml_declaration=True)
        logger.info("JUnit XML レポートを出力しました: %s", output_path)
        return output_path

    def _append_testcase(
        self, suite: ET.Element, step: StepResult, skip_reason: Optional[str],
    ) -> None:
        case = ET.SubElement(suite, "testcase", {
            "name": step.step_name,
            "classname": _SUITE_NAME,
            "time": _seconds(step.duration_ms),
        })
        if step.status == "failed" and step.error:
            # message 属性には 1 行目のみ
            failure = ET.SubElement(case, "failure", {"message": step.error.splitlines()[0]})
            failure.text = step.error
        elif step.status == "skipped":
            attrs = {"message": skip_reason} if skip_reason else {}
            ET.SubElement(case, "skipped", attrs)

    def _write(self, path: Path, text: str, kind: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logger.info("%s レポートを出力しました: %s", kind, path)
        return path


def _seconds(duration_ms: float) -> str:
    return f"{duration_ms / 1000:.3f}"
