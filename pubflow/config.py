"""
設定 — 環境変数スナップショット・認証情報・実行設定

環境変数はプロセス開始時に 1 度だけ EnvSnapshot として読み込み、
以降は明示的に引き渡す。実行中に os.environ を読み直さない。

優先順位: デフォルト値 < YAML 設定ファイル < 環境変数 < CLI 引数

環境変数一覧:
  GOOGLE_EMAIL          : サインインに使うアカウント（必須）
  GOOGLE_PASSWORD       : サインインに使うパスワード（必須）
  PUBFLOW_HEADED        : ブラウザ表示モード（true/false, デフォルト: false）
  PUBFLOW_LOCALE        : ブラウザのロケール（デフォルト: en-US）
  PUBFLOW_SLOW_MO       : 各操作間の遅延（ミリ秒, デフォルト: 0）
  PUBFLOW_ARTIFACTS_DIR : 成果物ディレクトリ（デフォルト: artifacts）
  PUBFLOW_STEP_TIMEOUT  : 各ステップの上限時間（ミリ秒, 0 で無制限）
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, NonNegativeInt
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .core.errors import ConfigurationAbsentError
from .core.session import SessionOptions

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

ENV_EMAIL = "GOOGLE_EMAIL"
ENV_PASSWORD = "GOOGLE_PASSWORD"
REQUIRED_ENV_KEYS: tuple[str, ...] = (ENV_EMAIL, ENV_PASSWORD)

_ENV_HEADED = "PUBFLOW_HEADED"
_ENV_LOCALE = "PUBFLOW_LOCALE"
_ENV_SLOW_MO = "PUBFLOW_SLOW_MO"
_ENV_ARTIFACTS_DIR = "PUBFLOW_ARTIFACTS_DIR"
_ENV_STEP_TIMEOUT = "PUBFLOW_STEP_TIMEOUT"

_SNAPSHOT_KEYS = REQUIRED_ENV_KEYS + (
    _ENV_HEADED,
    _ENV_LOCALE,
    _ENV_SLOW_MO,
    _ENV_ARTIFACTS_DIR,
    _ENV_STEP_TIMEOUT,
)


# ---------------------------------------------------------------------------
# 認証情報・ドキュメント内容
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Credentials:
    """サインインに使う認証情報。repr では値を出力しない。"""

    identity: str
    secret: str

    def __repr__(self) -> str:
        return "Credentials(identity='***', secret='***')"

    __str__ = __repr__


@dataclass(frozen=True)
class DocumentContent:
    """作成するドキュメントのタイトルと本文。"""

    title: str
    body: str

    @classmethod
    def generate(cls, prefix: str, body: str, token: Optional[int] = None) -> DocumentContent:
        """実行ごとに一意なタイトルを持つ DocumentContent を生成する。

        Args:
            prefix: タイトルの接頭辞
            body: 本文
            token: 一意トークン。None の場合は現在時刻（エポックミリ秒）
        """
        if token is None:
            token = int(time.time() * 1000)
        return cls(title=f"{prefix} {token}", body=body)


# ---------------------------------------------------------------------------
# 環境変数スナップショット
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnvSnapshot:
    """プロセス環境の読み取り専用スナップショット。"""

    values: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def capture(cls, environ: Optional[Mapping[str, str]] = None) -> EnvSnapshot:
        """環境変数を 1 度だけ読み込む。

        Args:
            environ: 読み込み元。None の場合は os.environ
        """
        source = os.environ if environ is None else environ
        picked = {key: source[key] for key in _SNAPSHOT_KEYS if key in source}
        return cls(values=MappingProxyType(picked))

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def missing_keys(self) -> list[str]:
        """未設定（または空文字）の必須キーを返す。"""
        return [key for key in REQUIRED_ENV_KEYS if not self.values.get(key)]

    def credentials(self) -> Credentials:
        """認証情報を返す。

        Raises:
            ConfigurationAbsentError: 必須キーが未設定の場合
        """
        missing = self.missing_keys()
        if missing:
            raise ConfigurationAbsentError(missing)
        return Credentials(
            identity=self.values[ENV_EMAIL],
            secret=self.values[ENV_PASSWORD],
        )


def get_missing_env_vars(environ: Optional[Mapping[str, str]] = None) -> list[str]:
    """未設定の必須環境変数名を返す。"""
    return EnvSnapshot.capture(environ).missing_keys()


# ---------------------------------------------------------------------------
# 実行設定
# ---------------------------------------------------------------------------

@dataclass
class FlowTimeouts:
    """各待機の上限時間（ミリ秒）。

    Attributes:
        probe: 任意要素の存在確認
        candidate: 候補リスト内の各候補
        launcher: アドオン起動ボタン
        connect_probe: Connect ボタンの存在確認
        secret_field: パスワード欄の表示待機
        mandatory: 必須要素・フレームの待機
        modal_action: モーダル内の許可ボタン
        modal_close: モーダルが閉じるまで
        optional_modal: 再表示されうるモーダルの確認
        network_settle: networkidle の待機
        action: クリック・入力操作
        scroll: スクロール
    """

    probe: int = 1_000
    candidate: int = 2_000
    launcher: int = 5_000
    connect_probe: int = 1_500
    secret_field: int = 30_000
    mandatory: int = 60_000
    modal_action: int = 10_000
    modal_close: int = 30_000
    optional_modal: int = 5_000
    network_settle: int = 2_000
    action: int = 10_000
    scroll: int = 5_000


@dataclass
class FlowConfig:
    """公開フローの実行設定。

    Attributes:
        headed: ブラウザを表示するか
        slow_mo: 各 Playwright 操作間の遅延（ミリ秒）
        locale: ブラウザのロケール
        permissions: コンテキストに付与する権限
        artifacts_dir: 成果物ベースディレクトリ
        step_timeout: 各ステップの上限時間（ミリ秒）。0 で無制限
        signin_url: サインインページ
        app_url_pattern: サインイン後の到達先として受け付ける URL の正規表現
        app_home_url: 到達しなかった場合に遷移するアプリのトップ
        create_url: ドキュメント作成 URL
        document_url_prefix: 公開結果として期待する URL の接頭辞
        addon_name: アドオンの表示名（画像 alt / aria-label）
        addon_launcher_id: アドオン起動ボタンの安定 ID
        document_title_prefix: 作成するドキュメントのタイトル接頭辞
        document_body: 作成するドキュメントの本文
        timeouts: 待機時間の設定
    """

    headed: bool = False
    slow_mo: int = 0
    locale: str = "en-US"
    permissions: list[str] = field(
        default_factory=lambda: ["clipboard-read", "clipboard-write"]
    )
    artifacts_dir: str = "artifacts"
    step_timeout: int = 0
    signin_url: str = "https://accounts.google.com/signin/v2/identifier"
    app_url_pattern: str = r"https://docs\.google\.com"
    app_home_url: str = "https://docs.google.com/document/u/0/"
    create_url: str = "https://docs.google.com/document/create"
    document_url_prefix: str = "https://docs.google.com/document/"
    addon_name: str = "Pantheon"
    addon_launcher_id: str = (
        "AKfycbzjfgx9TaDghCrCXShdFOCnSz_qYl2gTujLd2frM-psFNjpx9BjHwYbQT6XqDtpy3Bb"
    )
    document_title_prefix: str = "Content Publisher smoke test"
    document_body: str = (
        "This document was generated automatically by the pubflow smoke test "
        "for the Content Publisher add-on."
    )
    timeouts: FlowTimeouts = field(default_factory=FlowTimeouts)

    def session_options(self) -> SessionOptions:
        """Session 生成オプションを返す。"""
        return SessionOptions(locale=self.locale, permissions=list(self.permissions))


# ---------------------------------------------------------------------------
# 設定の読み込み
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """文字列を bool に変換する（true / 1 / yes → True）。"""
    return value.lower() in ("true", "1", "yes")


class TimeoutsFile(BaseModel):
    """設定ファイルの timeouts セクション。省略したキーは変更しない。"""

    probe: Optional[NonNegativeInt] = None
    candidate: Optional[NonNegativeInt] = None
    launcher: Optional[NonNegativeInt] = None
    connect_probe: Optional[NonNegativeInt] = None
    secret_field: Optional[NonNegativeInt] = None
    mandatory: Optional[NonNegativeInt] = None
    modal_action: Optional[NonNegativeInt] = None
    modal_close: Optional[NonNegativeInt] = None
    optional_modal: Optional[NonNegativeInt] = None
    network_settle: Optional[NonNegativeInt] = None
    action: Optional[NonNegativeInt] = None
    scroll: Optional[NonNegativeInt] = None


class ConfigFile(BaseModel):
    """YAML 設定ファイルのスキーマ。キーは FlowConfig のフィールド名に対応する。"""

    headed: Optional[bool] = None
    slow_mo: Optional[NonNegativeInt] = None
    locale: Optional[str] = None
    permissions: Optional[list[str]] = None
    artifacts_dir: Optional[str] = None
    step_timeout: Optional[NonNegativeInt] = None
    signin_url: Optional[str] = None
    app_url_pattern: Optional[str] = None
    app_home_url: Optional[str] = None
    create_url: Optional[str] = None
    document_url_prefix: Optional[str] = None
    addon_name: Optional[str] = None
    addon_launcher_id: Optional[str] = None
    document_title_prefix: Optional[str] = None
    document_body: Optional[str] = None
    timeouts: Optional[TimeoutsFile] = None


def load_config_file(config: FlowConfig, path: Path) -> FlowConfig:
    """YAML 設定ファイルの値を config に適用する。

    トップレベルのキーは FlowConfig のフィールド名、timeouts は
    FlowTimeouts のフィールド名に対応する。未知のキーは警告して無視する。

    Args:
        config: ベースとなる設定
        path: YAML ファイルのパス

    Returns:
        ファイルの値が適用された設定

    Raises:
        ValueError: YAML 構文エラー、またはスキーマに合わない値がある場合
    """
    yaml = YAML(typ="safe")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.load(f) or {}
    except YAMLError as e:
        raise ValueError(f"設定ファイルの YAML 構文エラー: {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"設定ファイルのトップレベルはマッピングである必要があります: {path}")

    _warn_unknown_keys(data, ConfigFile, "", path)
    if isinstance(data.get("timeouts"), dict):
        _warn_unknown_keys(data["timeouts"], TimeoutsFile, "timeouts.", path)

    try:
        parsed = ConfigFile.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValueError(f"設定ファイルの値が不正です: {path}: {problems}") from e

    for key, value in parsed.model_dump(exclude_none=True, exclude={"timeouts"}).items():
        setattr(config, key, value)
    if parsed.timeouts is not None:
        for key, value in parsed.timeouts.model_dump(exclude_none=True).items():
            setattr(config.timeouts, key, value)

    logger.info("設定ファイルを読み込みました: %s", path)
    return config


def _warn_unknown_keys(
    data: Mapping[str, Any], model: type[BaseModel], prefix: str, path: Path,
) -> None:
    for key in data:
        if key not in model.model_fields:
            logger.warning("設定ファイルの未知のキーを無視します: %s%s (%s)", prefix, key, path)


def apply_env(config: FlowConfig, env: EnvSnapshot) -> FlowConfig:
    """環境変数スナップショットの値を config に適用する。"""
    headed = env.get(_ENV_HEADED)
    if headed is not None:
        config.headed = _parse_bool(headed)

    locale = env.get(_ENV_LOCALE)
    if locale:
        config.locale = locale

    artifacts_dir = env.get(_ENV_ARTIFACTS_DIR)
    if artifacts_dir:
        config.artifacts_dir = artifacts_dir

    for key, attr in ((_ENV_SLOW_MO, "slow_mo"), (_ENV_STEP_TIMEOUT, "step_timeout")):
        raw = env.get(key)
        if raw is None:
            continue
        try:
            setattr(config, attr, int(raw))
        except ValueError:
            logger.warning("%s の値が不正です: %s", key, raw)

    return config


def load_config(env: EnvSnapshot, config_file: Optional[Path] = None) -> FlowConfig:
    """デフォルト値 → 設定ファイル → 環境変数の順で FlowConfig を構築する。"""
    config = FlowConfig()
    if config_file is not None:
        load_config_file(config, config_file)
    return apply_env(config, env)
