"""クリニックデータモデル（Pydantic）"""

from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

TRUE_VALUES = {"1", "true", "yes", "on"}


class Location(BaseModel):
    """緯度経度"""

    lat: float
    lng: float


class Photo(BaseModel):
    """写真参照（Placesのリソース名または完全なURL）"""

    name: str
    width_px: Optional[int] = Field(
        None, validation_alias=AliasChoices("width_px", "widthPx")
    )
    height_px: Optional[int] = Field(
        None, validation_alias=AliasChoices("height_px", "heightPx")
    )


class OpeningHours(BaseModel):
    """営業時間"""

    open_now: Optional[bool] = None
    weekday_text: list[str] = Field(default_factory=list)

    @field_validator("weekday_text", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return v or []


class AccessibilityOptions(BaseModel):
    """バリアフリー設備"""

    wheelchair_accessible_entrance: Optional[bool] = None
    wheelchair_accessible_parking: Optional[bool] = None
    wheelchair_accessible_restroom: Optional[bool] = None
    wheelchair_accessible_seating: Optional[bool] = None


class ParkingOptions(BaseModel):
    """駐車場"""

    free_parking_lot: Optional[bool] = None
    paid_parking_lot: Optional[bool] = None
    free_street_parking: Optional[bool] = None
    paid_street_parking: Optional[bool] = None
    valet_parking: Optional[bool] = None
    free_garage_parking: Optional[bool] = None
    paid_garage_parking: Optional[bool] = None


class PaymentOptions(BaseModel):
    """支払い方法"""

    accepts_credit_cards: Optional[bool] = None
    accepts_debit_cards: Optional[bool] = None
    accepts_cash_only: Optional[bool] = None
    accepts_nfc: Optional[bool] = None


class Clinic(BaseModel):
    """クリニック基本情報（Places APIのレスポンスをフラット化したもの）"""

    place_id: str = Field(..., description="Google Place ID")
    display_name: str = Field("", description="クリニック名")
    formatted_address: str = Field("", description="住所")
    location: Optional[Location] = None
    primary_type: str = Field("skin_care_clinic", description="主カテゴリ")
    types: list[str] = Field(default_factory=list)
    rating: Optional[float] = Field(None, ge=0, le=5, description="評価（0-5）")
    user_rating_count: Optional[int] = Field(None, ge=0, description="口コミ数")
    current_open_now: Optional[bool] = None
    phone: Optional[str] = None
    international_phone_number: Optional[str] = None
    website: Optional[str] = Field(None, description="公式サイトURL")
    google_maps_uri: Optional[str] = None
    business_status: str = "OPERATIONAL"
    city: Optional[str] = None
    state_code: Optional[str] = None
    postal_code: Optional[str] = None
    accessibility_options: Optional[AccessibilityOptions] = None
    parking_options: Optional[ParkingOptions] = None
    payment_options: Optional[PaymentOptions] = None
    price_level: Optional[str] = None
    photos: list[Photo] = Field(default_factory=list)
    opening_hours: Optional[OpeningHours] = None
    last_fetched_at: Optional[str] = Field(None, description="取得日 (YYYY-MM-DD)")

    @field_validator("place_id")
    @classmethod
    def place_id_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("place_id is required")
        return v.strip()

    @field_validator("display_name", "formatted_address", "primary_type", "business_status", mode="before")
    @classmethod
    def none_to_default(cls, v: Any, info: Any) -> Any:
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("types", "photos", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    @field_validator("website")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            return None
        return v

    @field_validator("state_code")
    @classmethod
    def normalize_state_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @property
    def is_open_now(self) -> bool:
        """現在営業中かどうか"""
        if self.current_open_now is True:
            return True
        return bool(self.opening_hours and self.opening_hours.open_now is True)

    @property
    def searchable_text(self) -> str:
        """検索対象テキスト（小文字）"""
        parts = [
            self.display_name,
            self.formatted_address,
            " ".join(self.types),
            self.primary_type,
        ]
        return " ".join(parts).lower()

    @property
    def primary_type_label(self) -> str:
        return self.primary_type.replace("_", " ")


class StateDataset(BaseModel):
    """州ごとの収集結果ファイル"""

    state: str
    state_code: str
    total: int = 0
    last_updated: str
    clinics: list[Clinic] = Field(default_factory=list)


class ClinicFilters(BaseModel):
    """一覧画面のフィルター・ソート条件"""

    rating_min: Optional[float] = Field(None, ge=0, le=5)
    has_website: bool = False
    has_phone: bool = False
    wheelchair_accessible: bool = False
    free_parking: bool = False
    open_now: bool = False
    states: list[str] = Field(default_factory=list)
    sort_by: Optional[Literal["rating", "reviews", "name"]] = None
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("states")
    @classmethod
    def normalize_states(cls, v: list[str]) -> list[str]:
        return [s.strip().upper() for s in v if s and s.strip()]

    @classmethod
    def from_args(cls, args: Any) -> "ClinicFilters":
        """
        クエリパラメータ（werkzeugのMultiDict）から生成

        Args:
            args: request.args

        Returns:
            ClinicFilters
        """
        states: list[str] = []
        for value in args.getlist("states"):
            states.extend(value.split(","))

        data: dict[str, Any] = {"states": states}
        if args.get("rating_min"):
            data["rating_min"] = args.get("rating_min")
        for flag in ("has_website", "has_phone", "wheelchair_accessible", "free_parking", "open_now"):
            data[flag] = str(args.get(flag, "")).lower() in TRUE_VALUES
        if args.get("sort_by"):
            data["sort_by"] = args.get("sort_by")
        if args.get("sort_order"):
            data["sort_order"] = args.get("sort_order")
        return cls(**data)

    @property
    def is_active(self) -> bool:
        return self != ClinicFilters()


class ClinicListQuery(BaseModel):
    """クリニック一覧APIのクエリ"""

    state: Optional[str] = None
    city: Optional[str] = None
    page: int = Field(1, ge=1)
    per_page: int = Field(500, ge=1, le=1000)

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @field_validator("city")
    @classmethod
    def strip_city(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def range_from(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def range_to(self) -> int:
        return self.range_from + self.per_page - 1


class ClinicListResponse(BaseModel):
    """クリニック一覧APIのレスポンス"""

    clinics: list[Clinic] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 500
