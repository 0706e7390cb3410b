"""
pubflow — Content Publisher 公開フローの E2E ドライバ

Google アカウントへのサインインからドキュメント作成、アドオンの起動、
権限ダイアログの許可、接続までを Playwright で自動実行する。
"""

__version__ = "0.1.0"
