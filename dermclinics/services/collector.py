"""州ごとの皮膚科クリニックデータ収集（Places Text Search）"""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from dermclinics.config import US_STATES, config
from dermclinics.exceptions import RequestCapExceeded
from dermclinics.models.clinic import Clinic, StateDataset
from dermclinics.services.derm_classifier import DermClassifier
from dermclinics.services.place_transformer import to_clinic
from dermclinics.services.places_client import PlacesClient, RequestGate

logger = logging.getLogger(__name__)


def parse_states(arg: str | None) -> list[str]:
    """
    --states 引数を州コードのリストに変換

    Args:
        arg: "CA,ny, TX" のようなカンマ区切り文字列（Noneまたは空で全州）

    Returns:
        大文字の州コードリスト

    Raises:
        ValueError: 不明な州コードが含まれる場合
    """
    if not arg or not arg.strip():
        return list(config.states)

    states = [s.strip().upper() for s in arg.split(",") if s.strip()]
    unknown = [s for s in states if s not in US_STATES]
    if unknown:
        raise ValueError(f"Unknown state code(s): {', '.join(unknown)}")
    return states


class ClinicCollector:
    """Text Searchをページングしながら州ごとのクリニックを収集"""

    def __init__(
        self,
        client: PlacesClient | None = None,
        classifier: DermClassifier | None = None,
        data_dir: Path | None = None,
        queries: list[str] | None = None,
        next_page_delay_ms: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.classifier = classifier or DermClassifier()
        self.client = client or PlacesClient(gate=RequestGate(), classifier=self.classifier)
        self.data_dir = Path(data_dir) if data_dir is not None else config.data_dir
        self.queries = queries or config.collection_queries
        self.next_page_delay_ms = (
            next_page_delay_ms if next_page_delay_ms is not None else config.next_page_delay_ms
        )
        self._sleep = sleep

    def collect_state(self, state_code: str) -> StateDataset:
        """
        1州分を収集してJSONファイルに書き出す

        Args:
            state_code: 州コード（例: "CA"）

        Returns:
            書き出したデータセット
        """
        state_code = state_code.upper()
        seen: set[str] = set()
        clinics: list[Clinic] = []

        for template in self.queries:
            query = template.format(state=state_code)
            page_token: str | None = None
            page = 0

            # nextPageTokenがなくなるまでページング
            while True:
                page += 1
                data = self.client.search_text(query, page_token)
                places = data.get("places") or []
                accepted = 0

                for place in places:
                    if not self.classifier.accepts(place):
                        continue
                    place_id = place.get("id")
                    if not place_id or place_id in seen:
                        continue
                    clinic = to_clinic(place)
                    if clinic is None:
                        continue
                    seen.add(place_id)
                    clinics.append(clinic)
                    accepted += 1

                logger.debug(
                    f"[COLLECT] {state_code} '{query}' page {page}: "
                    f"{len(places)}件中 {accepted}件採用"
                )

                page_token = data.get("nextPageToken") or None
                if not page_token:
                    break
                # トークンが有効になるまで追加待機
                self._sleep(self.next_page_delay_ms / 1000)

        dataset = StateDataset(
            state=state_code,
            state_code=state_code,
            total=len(clinics),
            last_updated=datetime.now(timezone.utc).isoformat(),
            clinics=clinics,
        )
        out_path = self.write_dataset(dataset)
        logger.info(f"[COLLECT] {state_code}: {len(clinics)} clinics -> {out_path}")
        return dataset

    def write_dataset(self, dataset: StateDataset) -> Path:
        """データセットを <data_dir>/<state>.json に保存"""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        out_path = self.data_dir / f"{dataset.state_code.lower()}.json"
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(dataset.model_dump(mode="json"), f, ensure_ascii=False, indent=2)
        return out_path

    def collect(self, states: list[str]) -> dict[str, Any]:
        """
        複数州を順番に収集

        1州の失敗はログに残して次へ進む。リクエスト上限到達時は中断する。

        Returns:
            州ごとの件数とエラーを含むサマリー
        """
        start_time = time.time()
        summary: dict[str, Any] = {"collected": {}, "failed": {}, "aborted": False}

        logger.info(
            f"[COLLECT] Collecting dermatology clinics for {len(states)} state(s) "
            f"(~{config.places_qps} QPS, max requests: {config.places_max_requests})"
        )

        for state_code in states:
            logger.info(f"[COLLECT] -> {state_code}")
            try:
                dataset = self.collect_state(state_code)
                summary["collected"][state_code] = dataset.total
            except RequestCapExceeded as e:
                logger.error(f"[COLLECT] {state_code}: {e.message}、収集を中断します")
                summary["failed"][state_code] = e.message
                summary["aborted"] = True
                break
            except Exception as e:
                logger.error(f"[COLLECT] {state_code}: {type(e).__name__}: {e}")
                summary["failed"][state_code] = str(e)

        elapsed = time.time() - start_time
        logger.info(
            f"[COLLECT] 完了: 成功={len(summary['collected'])}州, "
            f"失敗={len(summary['failed'])}州 ({elapsed:.1f}秒)"
        )
        return summary
