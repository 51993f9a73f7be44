"""Google Places API (v1) クライアント"""

import logging
import math
import re
import time
from typing import Any, Callable
from urllib.parse import urlencode

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
)

from dermclinics.config import config
from dermclinics.exceptions import ConfigurationError, PlacesAPIError, RequestCapExceeded
from dermclinics.models.clinic import Clinic, Location
from dermclinics.services.derm_classifier import DermClassifier
from dermclinics.services.place_transformer import to_clinic

logger = logging.getLogger(__name__)

PLACES_API_URL = "https://places.googleapis.com/v1"
GEOCODE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"
REQUEST_TIMEOUT = (5, 30)
RETRYABLE_STATUS = {429, 500, 502, 503, 504}
PHOTO_NAME_RE = re.compile(r"places/[A-Za-z0-9_-]+/photos/[A-Za-z0-9_-]+")

# 単一placeのフィールド
PLACE_FIELDS = [
    "id",
    "displayName",
    "formattedAddress",
    "addressComponents",
    "location",
    "primaryType",
    "types",
    "rating",
    "userRatingCount",
    "currentOpeningHours.openNow",
    "regularOpeningHours.weekdayDescriptions",
    "nationalPhoneNumber",
    "internationalPhoneNumber",
    "websiteUri",
    "googleMapsUri",
    "businessStatus",
    "accessibilityOptions",
    "parkingOptions",
    "priceLevel",
    "paymentOptions",
    "photos.name",
    "photos.widthPx",
    "photos.heightPx",
]

DETAILS_FIELD_MASK = ",".join(PLACE_FIELDS)
NEARBY_FIELD_MASK = ",".join(f"places.{field}" for field in PLACE_FIELDS)
SEARCH_TEXT_FIELD_MASK = NEARBY_FIELD_MASK + ",nextPageToken"


def _is_transient(error: BaseException) -> bool:
    """リトライ対象のエラーか判定"""
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return True
    return isinstance(error, PlacesAPIError) and error.status_code in RETRYABLE_STATUS


def is_valid_photo_name(photo_name: str) -> bool:
    """Placesの写真リソース名（places/<id>/photos/<ref>）か判定"""
    return bool(PHOTO_NAME_RE.fullmatch(photo_name))


def get_photo_url(photo_name: str, max_width: int = 400, max_height: int = 400) -> str:
    """
    APIキーをクライアントに露出しない写真URLを生成

    完全なURL（Unsplash等）はそのまま返し、それ以外は /api/photo プロキシを使う
    """
    if photo_name.lower().startswith(("http://", "https://")):
        return photo_name
    query = urlencode({"name": photo_name, "w": max_width, "h": max_height})
    return f"/api/photo?{query}"


class RequestGate:
    """リクエスト数の上限とQPSによるペース制御"""

    def __init__(
        self,
        max_requests: int | None = None,
        qps: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_requests = max_requests if max_requests is not None else config.places_max_requests
        self.qps = qps if qps is not None else config.places_qps
        self.requests = 0
        self._sleep = sleep

    @property
    def interval_seconds(self) -> float:
        return math.ceil(1000 / self.qps) / 1000

    def wait(self) -> None:
        """リクエスト1回分をカウントし、QPSに合わせて待機"""
        self.requests += 1
        if self.requests > self.max_requests:
            raise RequestCapExceeded(
                "Daily request cap hit",
                details={"max_requests": self.max_requests},
            )
        self._sleep(self.interval_seconds)


class PlacesClient:
    """Google Places API (v1) の呼び出し"""

    def __init__(
        self,
        api_key: str | None = None,
        session: requests.Session | None = None,
        gate: RequestGate | None = None,
        classifier: DermClassifier | None = None,
    ) -> None:
        """
        Args:
            api_key: Places APIキー（指定なしで環境変数から取得）
            session: HTTPセッション
            gate: リクエスト制御（収集スクリプト用、Webリクエストでは不要）
            classifier: 周辺検索で使う皮膚科判定
        """
        self.api_key = api_key if api_key is not None else config.google_places_api_key
        self.session = session or requests.Session()
        self.gate = gate
        self.classifier = classifier or DermClassifier()

    def _headers(self, field_mask: str | None = None) -> dict[str, str]:
        if not self.api_key:
            raise ConfigurationError(
                "GOOGLE_PLACES_API_KEY is not set",
                details={"hint": "Add GOOGLE_PLACES_API_KEY to .env.local"},
            )
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
        }
        if field_mask:
            headers["X-Goog-FieldMask"] = field_mask
        return headers

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    def _request(
        self,
        method: str,
        url: str,
        *,
        field_mask: str | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        stream: bool = False,
    ) -> requests.Response:
        """ゲート通過後にリクエストを送信し、エラーステータスを例外に変換"""
        if self.gate is not None:
            self.gate.wait()

        response = self.session.request(
            method,
            url,
            headers=self._headers(field_mask),
            json=json_body,
            params=params,
            stream=stream,
            timeout=REQUEST_TIMEOUT,
        )
        if not response.ok:
            # ストリーミング時に接続をプールへ戻す
            response.close()
            raise PlacesAPIError(
                f"Places API error: {response.status_code} {response.reason}",
                status_code=response.status_code,
                details={"url": url},
            )
        return response

    def search_text(self, query: str, page_token: str | None = None) -> dict[str, Any]:
        """
        テキスト検索（1ページ分）

        Args:
            query: 検索クエリ（例: "dermatologist in CA"）
            page_token: 前ページのnextPageToken

        Returns:
            places と nextPageToken を含むレスポンス
        """
        body: dict[str, Any] = {
            "textQuery": query,
            "pageSize": config.places_page_size,
            "languageCode": "en",
            "regionCode": "US",
        }
        if page_token:
            body["pageToken"] = page_token

        logger.debug(f"[PLACES] searchText: '{query}' (page_token={bool(page_token)})")
        response = self._request(
            "POST",
            f"{PLACES_API_URL}/places:searchText",
            field_mask=SEARCH_TEXT_FIELD_MASK,
            json_body=body,
        )
        return response.json()

    def search_nearby(self, location: Location, radius: int | None = None) -> list[Clinic]:
        """
        指定地点周辺の皮膚科クリニックを検索

        エラー時は空リストを返す
        """
        radius = radius or config.nearby_radius_m
        body = {
            "includedTypes": ["skin_care_clinic", "doctor"],
            "maxResultCount": 20,
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": location.lat, "longitude": location.lng},
                    "radius": radius,
                },
            },
        }
        try:
            response = self._request(
                "POST",
                f"{PLACES_API_URL}/places:searchNearby",
                field_mask=NEARBY_FIELD_MASK,
                json_body=body,
            )
            places = response.json().get("places") or []
        except Exception as e:
            logger.error(f"[PLACES] Error fetching nearby clinics: {type(e).__name__}: {e}")
            return []

        clinics = []
        for place in places:
            if not self.classifier.is_nearby_dermatology(place):
                continue
            clinic = to_clinic(place)
            if clinic:
                clinics.append(clinic)
        return clinics

    def get_place_details(self, place_id: str) -> Clinic | None:
        """
        クリニック詳細を取得

        エラー時や皮膚科でない場合はNone
        """
        try:
            response = self._request(
                "GET",
                f"{PLACES_API_URL}/places/{place_id}",
                field_mask=DETAILS_FIELD_MASK,
            )
            place = response.json()
        except Exception as e:
            logger.error(f"[PLACES] Error fetching clinic details ({place_id}): {type(e).__name__}: {e}")
            return None

        if not self.classifier.is_nearby_dermatology(place):
            return None
        return to_clinic(place)

    def fetch_photo(
        self, photo_name: str, max_width: int = 400, max_height: int = 300
    ) -> requests.Response:
        """
        写真メディアを取得（ストリーミング）

        Raises:
            ValueError: 写真リソース名でない場合
            PlacesAPIError: 上流エラー時
        """
        if not is_valid_photo_name(photo_name):
            raise ValueError(f"Invalid photo name: {photo_name}")
        return self._request(
            "GET",
            f"{PLACES_API_URL}/{photo_name}/media",
            params={"maxWidthPx": max_width, "maxHeightPx": max_height},
            stream=True,
        )

    def geocode_address(self, address: str) -> Location | None:
        """住所から座標を取得（失敗時はNone）"""
        try:
            response = self.session.get(
                GEOCODE_API_URL,
                params={"address": address, "key": config.google_maps_api_key},
                timeout=REQUEST_TIMEOUT,
            )
            data = response.json()
            results = data.get("results") or []
            if results:
                loc = results[0]["geometry"]["location"]
                return Location(lat=loc["lat"], lng=loc["lng"])
            return None
        except Exception as e:
            logger.error(f"Geocoding error: {e}")
            return None
