"""ヘルスチェックエンドポイント"""

from flask import Blueprint, jsonify
from flask.typing import ResponseReturnValue

from dermclinics.config import config

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check() -> ResponseReturnValue:
    """ヘルスチェック"""
    return jsonify({"status": "healthy"})


@bp.route("/ready")
def readiness_check() -> ResponseReturnValue:
    """レディネスチェック"""
    return jsonify(
        {
            "status": "ready",
            "storage_backend": config.storage_backend,
            "places_configured": bool(config.google_places_api_key),
        }
    )

