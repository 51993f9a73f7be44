"""pytest共通設定・fixtures"""

import os
import pytest

# テスト用環境変数を設定
os.environ.setdefault("FLASK_ENV", "testing")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("GOOGLE_PLACES_API_KEY", "test-places-key")
os.environ.setdefault("STORAGE_BACKEND", "json")


@pytest.fixture
def app():
    """Flaskテストアプリケーション"""
    from dermclinics.main import create_app

    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flaskテストクライアント"""
    return app.test_client()


@pytest.fixture
def sample_place():
    """Places API (v1) のplaceサンプル"""
    return {
        "id": "ChIJ-derm-1",
        "displayName": {"text": "Sunset Dermatology", "languageCode": "en"},
        "formattedAddress": "100 Sunset Blvd, Los Angeles, CA 90028, USA",
        "addressComponents": [
            {"longText": "Los Angeles", "shortText": "Los Angeles", "types": ["locality", "political"]},
            {
                "longText": "California",
                "shortText": "CA",
                "types": ["administrative_area_level_1", "political"],
            },
            {"longText": "90028", "shortText": "90028", "types": ["postal_code"]},
        ],
        "location": {"latitude": 34.0983, "longitude": -118.3267},
        "primaryType": "skin_care_clinic",
        "types": ["skin_care_clinic", "health", "point_of_interest"],
        "rating": 4.7,
        "userRatingCount": 312,
        "currentOpeningHours": {"openNow": True},
        "regularOpeningHours": {
            "weekdayDescriptions": ["Monday: 9:00 AM – 5:00 PM", "Tuesday: 9:00 AM – 5:00 PM"]
        },
        "nationalPhoneNumber": "(323) 555-0100",
        "internationalPhoneNumber": "+1 323-555-0100",
        "websiteUri": "https://sunsetderm.example.com",
        "googleMapsUri": "https://maps.google.com/?cid=1",
        "businessStatus": "OPERATIONAL",
        "accessibilityOptions": {"wheelchairAccessibleEntrance": True},
        "parkingOptions": {"freeParkingLot": True, "paidParkingLot": False},
        "paymentOptions": {"acceptsCreditCards": True},
        "photos": [
            {"name": "places/ChIJ-derm-1/photos/abc", "widthPx": 1200, "heightPx": 800},
        ],
    }


@pytest.fixture
def sample_clinics():
    """複数のサンプルクリニック"""
    from dermclinics.models.clinic import Clinic

    return [
        Clinic(
            place_id="p1",
            display_name="Sunset Dermatology",
            formatted_address="100 Sunset Blvd, Los Angeles, CA",
            location={"lat": 34.09, "lng": -118.32},
            rating=4.7,
            user_rating_count=312,
            phone="(323) 555-0100",
            website="https://sunsetderm.example.com",
            city="Los Angeles",
            state_code="CA",
            accessibility_options={"wheelchair_accessible_entrance": True},
            parking_options={"free_parking_lot": True},
            current_open_now=True,
        ),
        Clinic(
            place_id="p2",
            display_name="Austin Skin Clinic",
            formatted_address="200 Congress Ave, Austin, TX",
            location={"lat": 30.27, "lng": -97.74},
            rating=4.2,
            user_rating_count=980,
            city="Austin",
            state_code="TX",
            types=["doctor", "health"],
            primary_type="doctor",
        ),
        Clinic(
            place_id="p3",
            display_name="Brooklyn Derma Care",
            formatted_address="300 Atlantic Ave, Brooklyn, NY",
            rating=None,
            user_rating_count=None,
            phone="   ",
            city="Brooklyn",
            state_code="NY",
            opening_hours={"open_now": True, "weekday_text": []},
        ),
    ]


@pytest.fixture
def write_state_file(tmp_path):
    """収集結果JSONを書き出すヘルパー"""
    import json

    def _write(state_code, clinics, data_dir=None):
        data_dir = data_dir or tmp_path
        data_dir.mkdir(parents=True, exist_ok=True)
        path = data_dir / f"{state_code.lower()}.json"
        path.write_text(
            json.dumps(
                {
                    "state": state_code,
                    "state_code": state_code,
                    "total": len(clinics),
                    "last_updated": "2026-01-01T00:00:00+00:00",
                    "clinics": clinics,
                }
            ),
            encoding="utf-8",
        )
        return path

    return _write
