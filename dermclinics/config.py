"""アプリケーション設定管理"""

import os
import logging
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from dermclinics.exceptions import ConfigurationError

# ロギング設定
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# 米国50州 + DC
US_STATES = [
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL",
    "IN", "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT",
    "NE", "NV", "NH", "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI",
    "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY", "DC",
]

DEFAULT_QUERIES = [
    "dermatology clinic in {state}",
    "dermatologist in {state}",
    "skin clinic in {state}",
]

DEFAULT_DERM_KEYWORDS = ["dermatolog", "skin clinic", "skin center", r"derma\b"]


class Config:
    """アプリケーション設定クラス"""

    # 基本パス
    BASE_DIR = Path(__file__).parent.parent
    CONFIG_DIR = BASE_DIR / "config"

    # 環境変数（必須）
    REQUIRED_ENV_VARS = [
        "GOOGLE_PLACES_API_KEY",
    ]

    # 環境変数（Supabase使用時に必須）
    SUPABASE_REQUIRED_ENV_VARS = [
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
    ]

    def __init__(self) -> None:
        # .env / .env.local 読み込み
        load_dotenv()
        load_dotenv(self.BASE_DIR / ".env.local")

        # 設定ファイル読み込み
        self._default_config = self._load_yaml("default.yaml")
        self._keywords_config = self._load_yaml("derm_keywords.yaml")

        # 環境変数検証
        self._validate_env_vars()

    def _load_yaml(self, filename: str) -> dict[str, Any]:
        """YAML設定ファイルを読み込む"""
        filepath = self.CONFIG_DIR / filename
        if not filepath.exists():
            logger.warning(f"Config file not found: {filepath}")
            return {}

        with open(filepath, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _section(self, name: str) -> dict[str, Any]:
        return self._default_config.get(name, {}) or {}

    def _validate_env_vars(self) -> None:
        """必須環境変数の存在確認"""
        missing = []
        for var in self.REQUIRED_ENV_VARS:
            if not os.environ.get(var):
                missing.append(var)

        if missing:
            logger.warning(
                f"Missing required environment variables: {missing}. "
                "Some features may not work properly."
            )

    def validate_supabase_config(self) -> None:
        """Supabase設定の検証（使用時に呼び出し）"""
        missing = []
        for var in self.SUPABASE_REQUIRED_ENV_VARS:
            if not os.environ.get(var):
                missing.append(var)

        if missing:
            raise ConfigurationError(
                "Supabase configuration is incomplete",
                details={"missing_vars": missing},
            )

    def validate_places_config(self) -> None:
        """Places API設定の検証（収集・写真取得時に呼び出し）"""
        if not self.google_places_api_key:
            raise ConfigurationError(
                "GOOGLE_PLACES_API_KEY is not set",
                details={"hint": "Add GOOGLE_PLACES_API_KEY to .env.local"},
            )
        if self.places_max_requests < 1:
            raise ConfigurationError(
                "PLACES_MAX_REQUESTS must be positive",
                details={"value": self.places_max_requests},
            )

    # プロパティ: 環境変数
    @property
    def flask_env(self) -> str:
        return os.environ.get("FLASK_ENV", "production")

    @property
    def secret_key(self) -> str:
        return os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    @property
    def google_places_api_key(self) -> str:
        return os.environ.get("GOOGLE_PLACES_API_KEY", "")

    @property
    def google_maps_api_key(self) -> str:
        return os.environ.get("GOOGLE_MAPS_API_KEY", "")

    @property
    def enable_map(self) -> bool:
        return os.environ.get("ENABLE_MAP", "false").lower() == "true"

    @property
    def supabase_url(self) -> str:
        return os.environ.get("SUPABASE_URL", "")

    @property
    def supabase_anon_key(self) -> str:
        return os.environ.get("SUPABASE_ANON_KEY", "")

    @property
    def supabase_service_key(self) -> str:
        # 書き込み（upsert）にはservice roleキーを優先
        return os.environ.get("SUPABASE_SERVICE_KEY", "") or self.supabase_anon_key

    @property
    def unsplash_access_key(self) -> str:
        return os.environ.get("UNSPLASH_ACCESS_KEY", "")

    # プロパティ: YAML設定
    @property
    def project_name(self) -> str:
        return self._default_config.get("project_name", "Derm Clinics Near Me")

    @property
    def tagline(self) -> str:
        return self._default_config.get(
            "tagline", "Find dermatology clinics across the USA"
        )

    @property
    def places_qps(self) -> float:
        return self._section("places").get("qps", 3)

    @property
    def next_page_delay_ms(self) -> int:
        return self._section("places").get("next_page_delay_ms", 1200)

    @property
    def places_max_requests(self) -> int:
        env_value = os.environ.get("PLACES_MAX_REQUESTS")
        if env_value:
            try:
                return int(env_value)
            except ValueError as e:
                raise ConfigurationError(
                    "PLACES_MAX_REQUESTS must be an integer",
                    details={"value": env_value},
                ) from e
        return self._section("places").get("max_requests", 800)

    @property
    def places_page_size(self) -> int:
        return self._section("places").get("page_size", 20)

    @property
    def nearby_radius_m(self) -> int:
        return self._section("places").get("nearby_radius_m", 50_000)

    @property
    def data_dir(self) -> Path:
        path = Path(self._section("collection").get("data_dir", "data/clinics"))
        return path if path.is_absolute() else self.BASE_DIR / path

    @property
    def collection_queries(self) -> list[str]:
        return self._section("collection").get("queries", DEFAULT_QUERIES)

    @property
    def states(self) -> list[str]:
        return self._section("collection").get("states", US_STATES)

    @property
    def storage_backend(self) -> str:
        return os.environ.get(
            "STORAGE_BACKEND", self._section("storage").get("backend", "supabase")
        )

    @property
    def clinics_table(self) -> str:
        return self._section("storage").get("table", "clinics")

    @property
    def upsert_batch_size(self) -> int:
        return self._section("storage").get("upsert_batch_size", 500)

    @property
    def default_per_page(self) -> int:
        return self._section("api").get("default_per_page", 500)

    @property
    def max_per_page(self) -> int:
        return self._section("api").get("max_per_page", 1000)

    @property
    def refresh_max_age_days(self) -> int:
        return self._section("freshness").get("max_age_days", 30)

    @property
    def images_output_dir(self) -> Path:
        path = Path(
            self._section("images").get(
                "output_dir", "dermclinics/static/clinic-images"
            )
        )
        return path if path.is_absolute() else self.BASE_DIR / path

    @property
    def images_query(self) -> str:
        return self._section("images").get(
            "query", "dermatology,clinic,medical,skin care,healthcare"
        )

    @property
    def images_total(self) -> int:
        return self._section("images").get("total", 50)

    @property
    def images_per_page(self) -> int:
        return self._section("images").get("per_page", 30)

    @property
    def images_concurrency(self) -> int:
        return self._section("images").get("concurrency", 5)

    @property
    def derm_keywords(self) -> list[str]:
        return self._keywords_config.get("derm_keywords", DEFAULT_DERM_KEYWORDS)

    def update_derm_keywords(self, keywords: list[str]) -> None:
        """皮膚科判定キーワードを更新してファイルに保存"""
        self._keywords_config["derm_keywords"] = keywords
        filepath = self.CONFIG_DIR / "derm_keywords.yaml"
        with open(filepath, "w", encoding="utf-8") as f:
            yaml.dump(
                self._keywords_config, f, allow_unicode=True, default_flow_style=False
            )


# グローバル設定インスタンス
config = Config()
