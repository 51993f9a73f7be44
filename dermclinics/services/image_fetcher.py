"""Unsplashからクリニック用のプレースホルダー画像を取得"""

import json
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any
from urllib.parse import urlencode, urlparse, urlunparse, parse_qsl

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from dermclinics.config import config
from dermclinics.exceptions import ConfigurationError, ImageFetchError

logger = logging.getLogger(__name__)

UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"
REQUEST_TIMEOUT = (5, 60)


def _with_size_params(src: str) -> str:
    """画像URLにサイズ指定パラメータを付与"""
    parts = urlparse(src)
    params = dict(parse_qsl(parts.query))
    params.update({"w": "1600", "dpr": "1", "auto": "format"})
    return urlunparse(parts._replace(query=urlencode(params)))


class UnsplashImageFetcher:
    """Unsplash検索APIで画像を探し、ファイルに保存する"""

    def __init__(
        self,
        access_key: str | None = None,
        output_dir: Path | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.access_key = access_key if access_key is not None else config.unsplash_access_key
        self.output_dir = Path(output_dir) if output_dir is not None else config.images_output_dir
        self.session = session or requests.Session()
        self.query = config.images_query
        self.per_page = config.images_per_page
        self.concurrency = config.images_concurrency

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def search(self, page: int) -> dict[str, Any]:
        """検索APIを1ページ分呼び出す"""
        if not self.access_key:
            raise ConfigurationError(
                "UNSPLASH_ACCESS_KEY is not set",
                details={"hint": "Add UNSPLASH_ACCESS_KEY to .env.local"},
            )

        response = self.session.get(
            UNSPLASH_SEARCH_URL,
            params={
                "query": self.query,
                "per_page": self.per_page,
                "page": page,
                "orientation": "landscape",
                "content_filter": "high",
            },
            headers={"Authorization": f"Client-ID {self.access_key}"},
            timeout=REQUEST_TIMEOUT,
        )
        if not response.ok:
            raise ImageFetchError(
                f"Unsplash search failed: {response.status_code} {response.reason}",
                details={"page": page},
            )
        return response.json()

    def _download(self, url: str, path: Path) -> None:
        response = self.session.get(url, timeout=REQUEST_TIMEOUT)
        if not response.ok:
            raise ImageFetchError(
                f"Download failed: {response.status_code} {response.reason}",
                details={"url": url},
            )
        path.write_bytes(response.content)

    def fetch(self, total: int | None = None) -> list[dict[str, Any]]:
        """
        画像を検索・ダウンロードしてマニフェストを書き出す

        Args:
            total: 保存する画像枚数（指定なしで設定値）

        Returns:
            マニフェスト（撮影者クレジット）のリスト

        Raises:
            ImageFetchError: 検索結果が0件の場合
        """
        total = total or config.images_total
        self.output_dir.mkdir(parents=True, exist_ok=True)

        pages_needed = math.ceil(total / self.per_page)
        results: list[dict[str, Any]] = []
        for page in range(1, pages_needed + 1):
            data = self.search(page)
            results.extend(data.get("results") or [])

        # IDで重複排除し、先頭からtotal件
        unique = list({photo["id"]: photo for photo in results if photo.get("id")}.values())[:total]
        if not unique:
            raise ImageFetchError("No results returned from Unsplash")

        logger.info(f"[IMAGES] {len(unique)}件の検索結果、ダウンロード開始...")

        def download(index: int, photo: dict[str, Any]) -> dict[str, Any] | None:
            urls = photo.get("urls") or {}
            src = urls.get("regular") or urls.get("full") or urls.get("small")
            if not src:
                return None

            filename = f"clinic-{index}.jpg"
            try:
                self._download(_with_size_params(src), self.output_dir / filename)
            except Exception as e:
                logger.error(f"[IMAGES] Download error ({filename}): {e}")
                return None

            user = photo.get("user") or {}
            logger.info(f"[IMAGES] saved {filename}")
            return {
                "filename": filename,
                "unsplash_id": photo.get("id"),
                "photographer": user.get("name"),
                "profile": (user.get("links") or {}).get("html"),
                "source": (photo.get("links") or {}).get("html"),
            }

        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            futures = [
                executor.submit(download, index, photo)
                for index, photo in enumerate(unique, 1)
            ]
            # 投入順（画像番号順）に結果を集める。想定外の例外はここで送出される
            entries = [future.result() for future in futures]

        manifest = [entry for entry in entries if entry is not None]

        with open(self.output_dir / "manifest.json", "w", encoding="utf-8") as f:
            json.dump(manifest, f, ensure_ascii=False, indent=2)

        logger.info(f"[IMAGES] 完了: {len(manifest)}枚 -> {self.output_dir}")
        return manifest
