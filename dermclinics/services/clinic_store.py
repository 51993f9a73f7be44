"""クリニックデータの保存・取得（Supabase / JSONファイル）"""

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError
from supabase import Client, create_client

from dermclinics.config import config
from dermclinics.exceptions import ConfigurationError, StorageError
from dermclinics.models.clinic import Clinic, ClinicListQuery

logger = logging.getLogger(__name__)


def _parse_rows(rows: list[dict[str, Any]]) -> list[Clinic]:
    """DB行・JSONレコードをClinicに変換（不正な行はスキップ）"""
    clinics = []
    for row in rows:
        try:
            clinics.append(Clinic.model_validate(row))
        except PydanticValidationError as e:
            logger.warning(f"Skipping invalid clinic row {row.get('place_id')}: {e}")
    return clinics


class ClinicStore(Protocol):
    """クリニックストアのインターフェース"""

    def list_clinics(self, query: ClinicListQuery) -> tuple[list[Clinic], int]: ...

    def get_clinic(self, place_id: str) -> Clinic | None: ...


class SupabaseClinicStore:
    """Supabaseの clinics テーブル"""

    _client: Client | None = None

    def __init__(self, client: Client | None = None, table: str | None = None) -> None:
        self._instance_client = client
        self.table = table or config.clinics_table

    @classmethod
    def _shared_client(cls) -> Client:
        """共有Supabaseクライアントを取得（初回のみ作成）"""
        if cls._client is None:
            config.validate_supabase_config()
            try:
                cls._client = create_client(config.supabase_url, config.supabase_service_key)
                logger.info("Supabase client initialized")
            except Exception as e:
                raise StorageError(
                    "Failed to create Supabase client",
                    details={"error": str(e)},
                ) from e
        return cls._client

    @property
    def client(self) -> Client:
        return self._instance_client or self._shared_client()

    def list_clinics(self, query: ClinicListQuery) -> tuple[list[Clinic], int]:
        """
        条件に合うクリニックを取得

        Args:
            query: 州・市・ページング条件

        Returns:
            (クリニックリスト, 総件数)
        """
        try:
            request = self.client.table(self.table).select("*", count="exact")
            if query.state:
                request = request.eq("state_code", query.state)
            if query.city:
                request = request.ilike("city", f"%{query.city}%")
            request = request.range(query.range_from, query.range_to)

            response = request.execute()
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Supabase error: {e}")
            raise StorageError(
                "Failed to fetch clinics",
                details={"error": str(e), "query": query.model_dump()},
            ) from e

        rows = response.data or []
        return _parse_rows(rows), response.count or 0

    def get_clinic(self, place_id: str) -> Clinic | None:
        """place_idでクリニックを取得"""
        try:
            response = (
                self.client.table(self.table)
                .select("*")
                .eq("place_id", place_id)
                .limit(1)
                .execute()
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise StorageError(
                "Failed to fetch clinic",
                details={"error": str(e), "place_id": place_id},
            ) from e

        clinics = _parse_rows(response.data or [])
        return clinics[0] if clinics else None

    def upsert_clinics(self, clinics: list[Clinic]) -> int:
        """
        クリニックをplace_idで上書き保存

        Returns:
            保存件数
        """
        batch_size = config.upsert_batch_size
        saved = 0
        for i in range(0, len(clinics), batch_size):
            batch = [c.model_dump(mode="json") for c in clinics[i : i + batch_size]]
            try:
                self.client.table(self.table).upsert(batch, on_conflict="place_id").execute()
            except ConfigurationError:
                raise
            except Exception as e:
                raise StorageError(
                    "Failed to upsert clinics",
                    details={"error": str(e), "batch_start": i},
                ) from e
            saved += len(batch)
            logger.info(f"Upserted {len(batch)} clinics (total: {saved})")
        return saved


class JsonClinicStore:
    """収集スクリプトが書き出したJSONファイル群を読むストア"""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir = Path(data_dir) if data_dir is not None else config.data_dir

    def load_all(self) -> list[Clinic]:
        """全州ファイルを読み込み、place_idで重複排除（先勝ち）"""
        if not self.data_dir.exists():
            logger.warning(f"Data directory not found: {self.data_dir}")
            return []

        seen: set[str] = set()
        clinics: list[Clinic] = []
        for path in sorted(self.data_dir.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    payload = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise StorageError(
                    f"Failed to read {path.name}",
                    details={"error": str(e)},
                ) from e

            for clinic in _parse_rows(payload.get("clinics") or []):
                if clinic.place_id in seen:
                    continue
                seen.add(clinic.place_id)
                clinics.append(clinic)
        return clinics

    def list_clinics(self, query: ClinicListQuery) -> tuple[list[Clinic], int]:
        clinics = self.load_all()
        if query.state:
            clinics = [c for c in clinics if c.state_code == query.state]
        if query.city:
            city = query.city.lower()
            clinics = [c for c in clinics if c.city and city in c.city.lower()]

        total = len(clinics)
        return clinics[query.range_from : query.range_to + 1], total

    def get_clinic(self, place_id: str) -> Clinic | None:
        for clinic in self.load_all():
            if clinic.place_id == place_id:
                return clinic
        return None


def load_datasets(data_dir: Path) -> list[Clinic]:
    """収集結果ファイルを読み込む（Supabaseへのロード用）"""
    return JsonClinicStore(data_dir).load_all()


def get_store() -> ClinicStore:
    """設定に応じたストアを返す"""
    backend = config.storage_backend
    if backend == "json":
        return JsonClinicStore()
    if backend == "supabase":
        return SupabaseClinicStore()
    raise ConfigurationError(
        f"Unknown storage backend: {backend}",
        details={"hint": "Use 'supabase' or 'json'"},
    )
