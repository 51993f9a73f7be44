"""Places APIレスポンス → Clinicモデル変換"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from dermclinics.models.clinic import Clinic

logger = logging.getLogger(__name__)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_keys(options: dict[str, Any] | None) -> dict[str, Any] | None:
    """camelCaseのキーをsnake_caseに変換（accessibilityOptions等）"""
    if not options:
        return None
    return {_CAMEL_RE.sub("_", key).lower(): value for key, value in options.items()}


def from_address_components(components: list[dict[str, Any]] | None) -> dict[str, str | None]:
    """
    addressComponentsから州・市・郵便番号を抽出

    Args:
        components: Places APIのaddressComponents

    Returns:
        state_code, city, postal_code を含む辞書
    """

    def get(component_type: str) -> dict[str, Any] | None:
        for component in components or []:
            if component_type in (component.get("types") or []):
                return component
        return None

    state = get("administrative_area_level_1")
    locality = get("locality")
    postal_town = get("postal_town")
    postal_code = get("postal_code")

    city = None
    if locality and locality.get("longText"):
        city = locality.get("longText")
    elif postal_town:
        city = postal_town.get("longText")

    return {
        "state_code": state.get("shortText") if state else None,
        "city": city,
        "postal_code": postal_code.get("longText") if postal_code else None,
    }


def _opening_hours(place: dict[str, Any]) -> dict[str, Any] | None:
    open_now = (place.get("currentOpeningHours") or {}).get("openNow")
    weekday_text = (place.get("regularOpeningHours") or {}).get("weekdayDescriptions")
    if open_now is None and not weekday_text:
        return None
    return {"open_now": open_now, "weekday_text": weekday_text or []}


def to_clinic(place: dict[str, Any], fetched_on: date | None = None) -> Clinic | None:
    """
    Places APIのplaceオブジェクトをClinicに変換

    Args:
        place: Places API (v1) のplace
        fetched_on: 取得日（指定なしで今日）

    Returns:
        Clinic、IDがない・不正なデータの場合はNone
    """
    if not place or not place.get("id"):
        return None

    location = place.get("location")
    address = from_address_components(place.get("addressComponents"))
    current_hours = place.get("currentOpeningHours") or {}

    try:
        return Clinic(
            place_id=place["id"],
            display_name=(place.get("displayName") or {}).get("text", ""),
            formatted_address=place.get("formattedAddress", ""),
            location=(
                {"lat": location.get("latitude", 0), "lng": location.get("longitude", 0)}
                if location
                else None
            ),
            primary_type=place.get("primaryType") or "skin_care_clinic",
            types=place.get("types") or [],
            rating=place.get("rating"),
            user_rating_count=place.get("userRatingCount"),
            current_open_now=current_hours.get("openNow"),
            phone=place.get("nationalPhoneNumber"),
            international_phone_number=place.get("internationalPhoneNumber"),
            website=place.get("websiteUri"),
            google_maps_uri=place.get("googleMapsUri"),
            business_status=place.get("businessStatus") or "OPERATIONAL",
            city=address["city"],
            state_code=address["state_code"],
            postal_code=address["postal_code"],
            accessibility_options=_snake_keys(place.get("accessibilityOptions")),
            parking_options=_snake_keys(place.get("parkingOptions")),
            payment_options=_snake_keys(place.get("paymentOptions")),
            price_level=place.get("priceLevel"),
            photos=[
                {
                    "name": photo.get("name"),
                    "width_px": photo.get("widthPx"),
                    "height_px": photo.get("heightPx"),
                }
                for photo in place.get("photos") or []
                if photo.get("name")
            ],
            opening_hours=_opening_hours(place),
            last_fetched_at=(fetched_on or date.today()).isoformat(),
        )
    except PydanticValidationError as e:
        logger.warning(f"Failed to create Clinic for place {place.get('id')}: {e}")
        return None


def needs_refresh(
    last_fetched_at: str | None, max_age_days: int = 30, today: date | None = None
) -> bool:
    """
    データの再取得が必要か判定（max_age_days日より古い）

    日付として解釈できない値は再取得対象とする
    """
    if not last_fetched_at:
        return True
    try:
        fetched = datetime.fromisoformat(last_fetched_at.replace("Z", "+00:00")).date()
    except ValueError:
        return True

    threshold = (today or date.today()) - timedelta(days=max_age_days)
    return fetched < threshold
