"""カスタム例外クラス定義"""

from typing import Any


class DermClinicsError(Exception):
    """アプリケーション基底例外"""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DermClinicsError):
    """設定エラー（環境変数不足など）"""

    pass


class PlacesAPIError(DermClinicsError):
    """Google Places API呼び出しエラー"""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class RateLimitError(DermClinicsError):
    """API レート制限エラー"""

    pass


class RequestCapExceeded(RateLimitError):
    """1回の実行あたりのリクエスト上限到達"""

    pass


class StorageError(DermClinicsError):
    """クリニックデータ保存・取得エラー"""

    pass


class ImageFetchError(DermClinicsError):
    """Unsplash画像取得エラー"""

    pass
