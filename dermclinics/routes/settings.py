"""設定管理API"""

import logging
from flask import Blueprint, request, jsonify
from flask.typing import ResponseReturnValue

from dermclinics.config import config
from dermclinics.services.derm_classifier import DermClassifier

logger = logging.getLogger(__name__)
bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@bp.route("/", methods=["GET"])
def get_settings() -> ResponseReturnValue:
    """現在の設定を取得"""
    return jsonify(
        {
            "project_name": config.project_name,
            "storage_backend": config.storage_backend,
            "derm_keywords": config.derm_keywords,
            "collection": {
                "queries": config.collection_queries,
                "states": config.states,
                "qps": config.places_qps,
                "max_requests": config.places_max_requests,
            },
        }
    )


@bp.route("/derm-keywords", methods=["GET"])
def get_derm_keywords() -> ResponseReturnValue:
    """皮膚科判定キーワード一覧取得"""
    return jsonify({"keywords": config.derm_keywords})


@bp.route("/derm-keywords", methods=["POST"])
def add_derm_keyword() -> ResponseReturnValue:
    """皮膚科判定キーワード追加"""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "error": "No data provided"}), 400

    keyword = data.get("keyword", "").strip()
    if not keyword:
        return jsonify({"success": False, "error": "Keyword is required"}), 400

    classifier = DermClassifier()
    try:
        classifier.add_keyword(keyword)
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    classifier.save()

    return jsonify({"success": True, "keywords": classifier.keywords})


@bp.route("/derm-keywords", methods=["DELETE"])
def remove_derm_keyword() -> ResponseReturnValue:
    """皮膚科判定キーワード削除"""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "error": "No data provided"}), 400

    keyword = data.get("keyword", "")
    if not keyword:
        return jsonify({"success": False, "error": "Keyword is required"}), 400

    classifier = DermClassifier()
    classifier.remove_keyword(keyword)
    classifier.save()

    return jsonify({"success": True, "keywords": classifier.keywords})
