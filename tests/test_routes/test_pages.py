"""画面ルートのテスト"""

import pytest
from unittest.mock import patch, MagicMock

from dermclinics.exceptions import StorageError


class TestPages:
    """一覧・詳細画面のテスト"""

    @pytest.fixture
    def mock_store(self, sample_clinics):
        """ストアモック"""
        with patch("dermclinics.routes.pages.get_store") as mock_get_store:
            store = MagicMock()
            store.list_clinics.return_value = (sample_clinics, len(sample_clinics))
            mock_get_store.return_value = store
            yield store

    def test_index_grid(self, client, mock_store):
        """グリッド表示"""
        response = client.get("/")

        assert response.status_code == 200
        html = response.get_data(as_text=True)
        assert "3 clinics found" in html
        assert "Sunset Dermatology" in html
        assert "Austin Skin Clinic" in html
        assert "/clinics/p1" in html

    def test_index_search(self, client, mock_store):
        """検索語で絞り込み"""
        response = client.get("/?q=austin")

        html = response.get_data(as_text=True)
        assert "1 clinics found" in html
        assert "Austin Skin Clinic" in html
        assert "Sunset Dermatology" not in html

    def test_index_filters(self, client, mock_store):
        """州フィルター"""
        response = client.get("/?states=NY")

        html = response.get_data(as_text=True)
        assert "Brooklyn Derma Care" in html
        assert "Austin Skin Clinic" not in html

    def test_index_invalid_filters_fall_back(self, client, mock_store):
        """不正なフィルター値は無視して全件表示"""
        response = client.get("/?rating_min=99")

        assert response.status_code == 200
        assert "3 clinics found" in response.get_data(as_text=True)

    def test_index_map_view(self, client, mock_store):
        """地図表示は座標のあるクリニックのみマーカーにする"""
        response = client.get("/?view=map")

        html = response.get_data(as_text=True)
        assert 'id="map"' in html
        assert "leaflet" in html
        assert '"lat": 34.09' in html
        assert '"lat": 30.27' in html
        assert "Brooklyn Derma Care" not in html.split("const clinics =")[1]

    def test_index_store_error(self, client, mock_store):
        """ストアのエラー時もページは表示する"""
        mock_store.list_clinics.side_effect = StorageError("Failed to fetch clinics")

        response = client.get("/")

        assert response.status_code == 200
        html = response.get_data(as_text=True)
        assert "Clinics could not be loaded" in html
        assert "0 clinics found" in html

    def test_clinic_detail(self, client, mock_store, sample_clinics):
        """詳細画面"""
        mock_store.get_clinic.return_value = sample_clinics[0]

        with patch("dermclinics.routes.pages.config") as mock_config:
            mock_config.enable_map = False
            mock_config.google_maps_api_key = ""
            mock_config.refresh_max_age_days = 30

            response = client.get("/clinics/p1")

        assert response.status_code == 200
        html = response.get_data(as_text=True)
        assert "Sunset Dermatology" in html
        assert "Map disabled" in html
        assert "Wheelchair accessible entrance" in html
        assert "tel:(323) 555-0100" in html
        # 取得日なしは再取得対象
        assert "may be out of date" in html

    def test_clinic_detail_with_map(self, client, mock_store, sample_clinics):
        """地図有効時は埋め込みマップを表示"""
        mock_store.get_clinic.return_value = sample_clinics[0]

        with patch("dermclinics.routes.pages.config") as mock_config:
            mock_config.enable_map = True
            mock_config.google_maps_api_key = "maps-key"
            mock_config.refresh_max_age_days = 30

            response = client.get("/clinics/p1")

        html = response.get_data(as_text=True)
        assert "maps/embed/v1/place?key=maps-key" in html
        assert "place_id:p1" in html

    def test_clinic_detail_not_found(self, client, mock_store):
        """存在しないクリニックは404ページ"""
        mock_store.get_clinic.return_value = None

        response = client.get("/clinics/unknown")

        assert response.status_code == 404
        assert "Clinic Not Found" in response.get_data(as_text=True)

    def test_clinic_detail_store_error(self, client, mock_store):
        """詳細取得時のストアエラーは500"""
        mock_store.get_clinic.side_effect = StorageError("Failed to fetch clinic")

        response = client.get("/clinics/p1")

        assert response.status_code == 500
