"""Flaskアプリケーションエントリーポイント"""

import logging
from datetime import date

from flask import Flask, Response
from flask.typing import ResponseReturnValue

from dermclinics.commands import register_commands
from dermclinics.config import config
from dermclinics.routes import clinics_bp, health_bp, pages_bp, photo_bp, settings_bp
from dermclinics.services.places_client import get_photo_url

# ロギング設定
logging.basicConfig(
    level=logging.DEBUG if config.flask_env == "development" else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-DNS-Prefetch-Control": "on",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "origin-when-cross-origin",
}


def create_app() -> Flask:
    """Flaskアプリケーションファクトリ"""
    app = Flask(__name__)

    # 設定
    app.secret_key = config.secret_key

    # Blueprint登録
    app.register_blueprint(health_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(clinics_bp)
    app.register_blueprint(photo_bp)
    app.register_blueprint(pages_bp)

    # CLIコマンド（flask collect など）
    register_commands(app)

    # テンプレート用ヘルパー
    app.add_template_global(get_photo_url, name="photo_url")

    @app.context_processor
    def inject_site() -> dict:
        return {
            "project_name": config.project_name,
            "tagline": config.tagline,
            "current_year": date.today().year,
        }

    @app.after_request
    def add_security_headers(response: Response) -> Response:
        for key, value in SECURITY_HEADERS.items():
            response.headers.setdefault(key, value)
        return response

    # エラーハンドラー
    @app.errorhandler(404)
    def not_found(e: Exception) -> ResponseReturnValue:
        return {"error": "Not found"}, 404

    @app.errorhandler(500)
    def internal_error(e: Exception) -> ResponseReturnValue:
        logger.exception("Internal server error")
        return {"error": "Internal server error"}, 500

    logger.info(f"Flask app created (env: {config.flask_env})")
    return app


# グローバルアプリインスタンス（gunicorn用）
app = create_app()


if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5000)
