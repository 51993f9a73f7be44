"""画面（一覧・地図・詳細）"""

import logging

from flask import Blueprint, abort, render_template, request, url_for
from flask.typing import ResponseReturnValue
from pydantic import ValidationError as PydanticValidationError

from dermclinics.config import config
from dermclinics.exceptions import DermClinicsError
from dermclinics.models.clinic import Clinic, ClinicFilters, ClinicListQuery
from dermclinics.services.clinic_search import apply_filters, search_clinics
from dermclinics.services.clinic_store import get_store
from dermclinics.services.place_transformer import needs_refresh

logger = logging.getLogger(__name__)
bp = Blueprint("pages", __name__)

QUICK_FILTERS = [
    ("All Clinics", ""),
    ("Acne Treatment", "acne"),
    ("Cosmetic", "cosmetic"),
    ("Pediatric", "pediatric"),
    ("Skin Cancer", "skin cancer"),
]

SORT_OPTIONS = [("", "Relevance"), ("rating", "Rating"), ("reviews", "Reviews"), ("name", "Name")]


def _map_markers(clinics: list[Clinic]) -> list[dict]:
    """地図表示用のマーカーデータ（座標のあるクリニックのみ）"""
    return [
        {
            "lat": c.location.lat,
            "lng": c.location.lng,
            "name": c.display_name,
            "rating": c.rating,
            "url": url_for("pages.clinic_detail", place_id=c.place_id),
        }
        for c in clinics
        if c.location and (c.location.lat or c.location.lng)
    ]


@bp.route("/")
def index() -> ResponseReturnValue:
    """一覧（グリッド／地図）"""
    view_mode = "map" if request.args.get("view") == "map" else "grid"
    search_query = request.args.get("q", "")

    try:
        filters = ClinicFilters.from_args(request.args)
    except PydanticValidationError:
        filters = ClinicFilters()

    error = None
    clinics = []
    try:
        clinics, _ = get_store().list_clinics(ClinicListQuery(per_page=config.max_per_page))
    except DermClinicsError as e:
        logger.error(f"Error loading clinics: {e.message}")
        error = "Clinics could not be loaded. Please try again later."

    clinics = apply_filters(search_clinics(clinics, search_query), filters)

    args = request.args.to_dict(flat=False)
    grid_url = url_for("pages.index", **{**args, "view": "grid"})
    map_url = url_for("pages.index", **{**args, "view": "map"})

    return render_template(
        "index.html",
        clinics=clinics,
        filters=filters,
        search_query=search_query,
        view_mode=view_mode,
        grid_url=grid_url,
        map_url=map_url,
        markers=_map_markers(clinics) if view_mode == "map" else [],
        quick_filters=QUICK_FILTERS,
        sort_options=SORT_OPTIONS,
        states=config.states,
        error=error,
    )


@bp.route("/clinics/<place_id>")
def clinic_detail(place_id: str) -> ResponseReturnValue:
    """クリニック詳細"""
    try:
        clinic = get_store().get_clinic(place_id)
    except DermClinicsError as e:
        logger.error(f"Error loading clinic details ({place_id}): {e.message}")
        abort(500)

    if clinic is None:
        return render_template("clinic_not_found.html"), 404

    return render_template(
        "clinic_detail.html",
        clinic=clinic,
        photos=clinic.photos[:4],
        enable_map=config.enable_map,
        maps_api_key=config.google_maps_api_key,
        is_stale=needs_refresh(clinic.last_fetched_at, config.refresh_max_age_days),
    )
