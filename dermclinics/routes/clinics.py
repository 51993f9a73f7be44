"""クリニック一覧・詳細API"""

import logging

from flask import Blueprint, jsonify, request
from flask.typing import ResponseReturnValue
from pydantic import ValidationError as PydanticValidationError

from dermclinics.config import config
from dermclinics.exceptions import DermClinicsError
from dermclinics.models.clinic import ClinicFilters, ClinicListQuery, ClinicListResponse
from dermclinics.services.clinic_search import apply_filters, search_clinics
from dermclinics.services.clinic_store import get_store

logger = logging.getLogger(__name__)
bp = Blueprint("clinics", __name__, url_prefix="/api/clinics")


@bp.route("", methods=["GET"])
def list_clinics() -> ResponseReturnValue:
    """
    クリニック一覧

    クエリ:
        state, city, page, per_page: ストア側の絞り込みとページング
        q, rating_min, has_website, ... sort_by, sort_order: 取得したページへの検索・フィルター

    レスポンス:
    {
        "clinics": [...],
        "total": 123,
        "page": 1,
        "per_page": 500
    }
    """
    try:
        query = ClinicListQuery(
            state=request.args.get("state"),
            city=request.args.get("city"),
            page=request.args.get("page", 1),
            per_page=request.args.get("per_page", config.default_per_page),
        )
        filters = ClinicFilters.from_args(request.args)
    except PydanticValidationError as e:
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return jsonify({"error": "Invalid query parameters", "details": details}), 400

    try:
        clinics, total = get_store().list_clinics(query)
    except DermClinicsError as e:
        logger.error(f"Error in clinics API: {e.message} {e.details}")
        return jsonify({"error": "Failed to fetch clinics"}), 500

    clinics = search_clinics(clinics, request.args.get("q"))
    clinics = apply_filters(clinics, filters)

    response = ClinicListResponse(
        clinics=clinics, total=total, page=query.page, per_page=query.per_page
    )
    return jsonify(response.model_dump(mode="json"))


@bp.route("/<place_id>", methods=["GET"])
def get_clinic(place_id: str) -> ResponseReturnValue:
    """クリニック詳細"""
    try:
        clinic = get_store().get_clinic(place_id)
    except DermClinicsError as e:
        logger.error(f"Error fetching clinic {place_id}: {e.message}")
        return jsonify({"error": "Failed to fetch clinic"}), 500

    if clinic is None:
        return jsonify({"error": "Clinic not found"}), 404
    return jsonify(clinic.model_dump(mode="json"))
