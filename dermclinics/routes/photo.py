"""Places写真プロキシ（APIキーをブラウザに渡さない）"""

import logging

import requests
from flask import Blueprint, Response, request, stream_with_context
from flask.typing import ResponseReturnValue

from dermclinics.exceptions import ConfigurationError, PlacesAPIError
from dermclinics.services.places_client import PlacesClient, is_valid_photo_name

logger = logging.getLogger(__name__)
bp = Blueprint("photo", __name__, url_prefix="/api")

# 1日キャッシュ、1週間はstale-while-revalidate
PHOTO_CACHE_CONTROL = "public, max-age=86400, stale-while-revalidate=604800"
CHUNK_SIZE = 64 * 1024


@bp.route("/photo", methods=["GET"])
def photo() -> ResponseReturnValue:
    """
    写真取得

    クエリ: name（places/<id>/photos/<ref>）, w（既定400）, h（既定300）
    """
    name = request.args.get("name")
    if not name:
        return Response('Missing "name"', status=400, mimetype="text/plain")
    if not is_valid_photo_name(name):
        return Response('Invalid "name"', status=400, mimetype="text/plain")

    width = request.args.get("w", "400")
    height = request.args.get("h", "300")
    if not width.isdigit() or not height.isdigit():
        return Response("Invalid size", status=400, mimetype="text/plain")

    try:
        upstream = PlacesClient().fetch_photo(name, int(width), int(height))
    except PlacesAPIError as e:
        logger.warning(f"Photo upstream error: {e.message}")
        return Response("Upstream error", status=e.status_code or 502, mimetype="text/plain")
    except ConfigurationError as e:
        logger.error(f"Photo proxy misconfigured: {e.message}")
        return Response("Upstream error", status=502, mimetype="text/plain")
    except requests.RequestException as e:
        logger.warning(f"Photo upstream unreachable: {e}")
        return Response("Upstream error", status=502, mimetype="text/plain")

    def generate():
        yield from upstream.iter_content(chunk_size=CHUNK_SIZE)

    response = Response(
        stream_with_context(generate()),
        content_type=upstream.headers.get("Content-Type", "image/jpeg"),
        headers={"Cache-Control": PHOTO_CACHE_CONTROL},
    )
    # ストリーム開始前に切断された場合も上流接続を閉じる
    response.call_on_close(upstream.close)
    return response
