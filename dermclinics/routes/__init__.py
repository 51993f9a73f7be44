"""ルート定義"""

from dermclinics.routes.health import bp as health_bp
from dermclinics.routes.settings import bp as settings_bp
from dermclinics.routes.clinics import bp as clinics_bp
from dermclinics.routes.photo import bp as photo_bp
from dermclinics.routes.pages import bp as pages_bp

__all__ = ["health_bp", "settings_bp", "clinics_bp", "photo_bp", "pages_bp"]
