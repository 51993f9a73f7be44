"""サービス層"""

from dermclinics.services.clinic_search import apply_filters, search_clinics
from dermclinics.services.clinic_store import JsonClinicStore, SupabaseClinicStore, get_store
from dermclinics.services.collector import ClinicCollector, parse_states
from dermclinics.services.derm_classifier import DermClassifier
from dermclinics.services.image_fetcher import UnsplashImageFetcher
from dermclinics.services.places_client import PlacesClient, RequestGate, get_photo_url

__all__ = [
    "apply_filters",
    "search_clinics",
    "JsonClinicStore",
    "SupabaseClinicStore",
    "get_store",
    "ClinicCollector",
    "parse_states",
    "DermClassifier",
    "UnsplashImageFetcher",
    "PlacesClient",
    "RequestGate",
    "get_photo_url",
]
