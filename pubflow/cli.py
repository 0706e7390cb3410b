"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

pubflow コマンドとして以下のサブコマンドを提供する:
  - run: 公開フローの実行
  - check-env: 必須環境変数の確認
  - list-steps: ステップ一覧
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "pubflow — Content Publisher アドオンの公開フロー自動実行ツール\n\n"
        "基本の流れ:\n"
        "  1. GOOGLE_EMAIL / GOOGLE_PASSWORD を設定\n"
        "  2. pubflow check-env   環境変数を確認\n"
        "  3. pubflow run         フローを実行\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s - %(message)s",
    )


# ---------------------------------------------------------------------------
# run コマンド
# ---------------------------------------------------------------------------

@app.command()
def run(
    headed: Optional[bool] = typer.Option(
        None, "--headed/--headless", help="ブラウザ表示モード（デフォルト: 非表示）",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML 設定ファイル",
    ),
    locale: Optional[str] = typer.Option(None, "--locale", help="ブラウザのロケール"),
    slow_mo: Optional[int] = typer.Option(
        None, "--slow-mo", help="各操作間の遅延（ミリ秒）。iframe 等のタイミング問題を緩和",
    ),
    step_timeout: Optional[int] = typer.Option(
        None, "--step-timeout", help="各ステップのタイムアウト（ミリ秒）。0 で無制限",
    ),
    artifacts_dir: Optional[Path] = typer.Option(
        None, "--artifacts-dir", help="成果物ディレクトリ",
    ),
    report: bool = typer.Option(
        True, "--report/--no-report", help="report.json / report.html / junit.xml を出力する",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="デバッグログを表示する"),
) -> None:
    """公開フロー（login → create-document → open-addon → connect → publish → verify）を実行する。"""
    import asyncio

    from .config import EnvSnapshot, load_config
    from .core.artifacts import ArtifactsManager
    from .core.reporting import Reporter
    from .core.runner import FlowRunner

    _configure_logging(verbose)

    try:
        env = EnvSnapshot.capture()
        config = load_config(env, config_file)

        # CLI 引数は設定ファイル・環境変数より優先
        if headed is not None:
            config.headed = headed
        if locale is not None:
            config.locale = locale
        if slow_mo is not None:
            config.slow_mo = slow_mo
        if step_timeout is not None:
            config.step_timeout = step_timeout
        if artifacts_dir is not None:
            config.artifacts_dir = str(artifacts_dir)

        runner = FlowRunner()

        missing = env.missing_keys()
        if missing:
            result = asyncio.run(runner.run_with_playwright(config, env))
            typer.echo(f"スキップ: {result.skip_reason}")
            return

        artifacts = ArtifactsManager(base_dir=Path(config.artifacts_dir))
        artifacts.create_run_dir()

        result = asyncio.run(runner.run_with_playwright(config, env, artifacts))

        typer.echo(f"ステータス: {result.status}")
        typer.echo(f"実行時間: {result.duration_ms:.0f}ms")
        for step in result.steps:
            typer.echo(f"  [{step.step_index + 1}] {step.step_name}: {step.status}")
        if result.published_url:
            typer.echo(f"公開 URL: {result.published_url}")
        if result.verification is not None:
            typer.echo(f"検証: {result.verification.status}")
        if result.error:
            typer.echo(f"エラー: {result.error}", err=True)

        if report and artifacts.run_dir is not None:
            reporter = Reporter()
            reporter.generate_json(result, artifacts.run_dir)
            reporter.generate_html(result, artifacts.run_dir)
            reporter.generate_junit_xml(result, artifacts.run_dir)
        if artifacts.run_dir is not None:
            typer.echo(f"成果物: {artifacts.run_dir}")

        if result.status == "failed":
            raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# check-env コマンド
# ---------------------------------------------------------------------------

@app.command("check-env")
def check_env() -> None:
    """必須の環境変数が設定されているかを確認する。値は表示しない。"""
    from .config import REQUIRED_ENV_KEYS, EnvSnapshot

    missing = EnvSnapshot.capture().missing_keys()
    for key in REQUIRED_ENV_KEYS:
        mark = "✗" if key in missing else "✓"
        typer.echo(f"{mark} {key}")

    if missing:
        typer.echo(f"未設定の環境変数: {', '.join(missing)}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# list-steps コマンド
# ---------------------------------------------------------------------------

@app.command("list-steps")
def list_steps() -> None:
    """実行順のステップ一覧を表示する。"""
    from .steps import create_publish_registry

    registry = create_publish_registry()
    for index, info in enumerate(registry.list_all(), start=1):
        typer.echo(f"  {index}. {info.name:<16} {info.description}")
