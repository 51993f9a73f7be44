"""州ごとのデータ収集のテスト"""

import json
import pytest
from unittest.mock import MagicMock, patch

from dermclinics.exceptions import PlacesAPIError, RequestCapExceeded
from dermclinics.services.collector import ClinicCollector, parse_states
from dermclinics.services.derm_classifier import DermClassifier


def make_place(place_id, name):
    return {"id": place_id, "displayName": {"text": name}}


class TestParseStates:
    """--states 引数のテスト"""

    def test_parse_states(self):
        """カンマ区切りを大文字に正規化"""
        assert parse_states("ca, ny,TX") == ["CA", "NY", "TX"]

    @pytest.mark.parametrize("arg", [None, "", "   "])
    def test_empty_means_all_states(self, arg):
        """省略時は設定の全州"""
        with patch("dermclinics.services.collector.config") as mock_config:
            mock_config.states = ["CA", "NY"]

            assert parse_states(arg) == ["CA", "NY"]

    def test_unknown_state(self):
        """不明な州コードはValueError"""
        with pytest.raises(ValueError) as exc_info:
            parse_states("CA,XX")

        assert "XX" in str(exc_info.value)


class TestClinicCollector:
    """ClinicCollectorのテスト"""

    @pytest.fixture
    def places_client(self):
        return MagicMock()

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def collector(self, places_client, tmp_path, sleeps):
        return ClinicCollector(
            client=places_client,
            classifier=DermClassifier(keywords=["dermatolog", "skin clinic"]),
            data_dir=tmp_path,
            queries=["dermatologist in {state}", "skin clinic in {state}"],
            next_page_delay_ms=1200,
            sleep=sleeps.append,
        )

    def test_collect_state_paginates_and_dedupes(self, collector, places_client, tmp_path, sleeps):
        """ページングしながら収集し、place_idで重複排除"""
        pages = {
            ("dermatologist in CA", None): {
                "places": [make_place("a", "Alpha Dermatology"), make_place("x", "Main Street Dental")],
                "nextPageToken": "t2",
            },
            ("dermatologist in CA", "t2"): {
                "places": [make_place("b", "Beta Dermatology")],
            },
            ("skin clinic in CA", None): {
                "places": [make_place("a", "Alpha Dermatology"), make_place("c", "Gamma Skin Clinic")],
            },
        }
        places_client.search_text.side_effect = lambda query, page_token=None: pages[(query, page_token)]

        dataset = collector.collect_state("ca")

        assert dataset.state_code == "CA"
        assert dataset.total == 3
        assert [c.place_id for c in dataset.clinics] == ["a", "b", "c"]
        assert places_client.search_text.call_count == 3
        # 次ページがある場合のみ待機
        assert sleeps == [1.2]

        payload = json.loads((tmp_path / "ca.json").read_text(encoding="utf-8"))
        assert payload["state"] == "CA"
        assert payload["total"] == 3
        assert [c["place_id"] for c in payload["clinics"]] == ["a", "b", "c"]

    def test_collect_state_no_results(self, collector, places_client, tmp_path):
        """結果なしでも空のファイルを書き出す"""
        places_client.search_text.return_value = {}

        dataset = collector.collect_state("WY")

        assert dataset.total == 0
        assert json.loads((tmp_path / "wy.json").read_text(encoding="utf-8"))["clinics"] == []

    def test_collect_continues_after_failure(self, collector, places_client, tmp_path):
        """1州の失敗は記録して次の州へ"""

        def search_text(query, page_token=None):
            if query.endswith("NY"):
                raise PlacesAPIError("Places API error: 400 Bad Request", status_code=400)
            return {"places": [make_place(f"id-{query}", "Alpha Dermatology")]}

        places_client.search_text.side_effect = search_text

        summary = collector.collect(["NY", "CA"])

        assert summary["collected"] == {"CA": 2}
        assert "NY" in summary["failed"]
        assert summary["aborted"] is False
        assert (tmp_path / "ca.json").exists()
        assert not (tmp_path / "ny.json").exists()

    def test_collect_aborts_on_request_cap(self, collector, places_client):
        """リクエスト上限到達で中断"""
        places_client.search_text.side_effect = RequestCapExceeded("Daily request cap hit")

        summary = collector.collect(["CA", "NY", "TX"])

        assert summary["aborted"] is True
        assert summary["failed"] == {"CA": "Daily request cap hit"}
        assert places_client.search_text.call_count == 1
