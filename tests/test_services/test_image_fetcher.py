"""Unsplash画像取得のテスト"""

import json
import time
import pytest
from unittest.mock import MagicMock

from dermclinics.exceptions import ConfigurationError, ImageFetchError
from dermclinics.services.image_fetcher import UnsplashImageFetcher, _with_size_params


def make_response(json_data=None, content=b"", status_code=200):
    response = MagicMock()
    response.ok = status_code < 400
    response.status_code = status_code
    response.reason = "OK" if response.ok else "Unauthorized"
    response.json.return_value = json_data or {}
    response.content = content
    return response


def make_photo(photo_id):
    return {
        "id": photo_id,
        "urls": {"regular": f"https://images.unsplash.com/{photo_id}?ixid=1"},
        "user": {"name": f"Photographer {photo_id}", "links": {"html": f"https://unsplash.com/@{photo_id}"}},
        "links": {"html": f"https://unsplash.com/photos/{photo_id}"},
    }


class TestWithSizeParams:
    """画像URLのサイズ指定"""

    def test_adds_params_and_keeps_existing(self):
        url = _with_size_params("https://images.unsplash.com/photo-1?ixid=abc&w=400")

        assert url.startswith("https://images.unsplash.com/photo-1?")
        assert "ixid=abc" in url
        assert "w=1600" in url
        assert "w=400" not in url
        assert "dpr=1" in url
        assert "auto=format" in url


class TestUnsplashImageFetcher:
    """UnsplashImageFetcherのテスト"""

    @pytest.fixture
    def session(self):
        return MagicMock()

    @pytest.fixture
    def fetcher(self, session, tmp_path):
        fetcher = UnsplashImageFetcher(access_key="test-key", output_dir=tmp_path, session=session)
        fetcher.per_page = 2
        fetcher.concurrency = 2
        return fetcher

    def test_search_request(self, fetcher, session):
        """検索APIのリクエスト内容"""
        session.get.return_value = make_response({"results": []})

        fetcher.search(3)

        kwargs = session.get.call_args[1]
        assert kwargs["headers"]["Authorization"] == "Client-ID test-key"
        assert kwargs["params"]["page"] == 3
        assert kwargs["params"]["per_page"] == 2
        assert kwargs["params"]["orientation"] == "landscape"

    def test_search_without_key(self, session, tmp_path):
        """アクセスキーなしはConfigurationError"""
        fetcher = UnsplashImageFetcher(access_key="", output_dir=tmp_path, session=session)

        with pytest.raises(ConfigurationError):
            fetcher.search(1)

        session.get.assert_not_called()

    def test_search_error(self, fetcher, session):
        """検索APIのエラーはImageFetchError"""
        session.get.return_value = make_response(status_code=401)

        with pytest.raises(ImageFetchError):
            fetcher.search(1)

    def test_fetch_downloads_and_writes_manifest(self, fetcher, session, tmp_path):
        """検索・ダウンロードしてマニフェストを書き出す"""
        search_pages = {
            1: make_response({"results": [make_photo("a"), make_photo("b")]}),
            2: make_response({"results": [make_photo("b"), make_photo("c")]}),
        }

        def get(url, params=None, headers=None, timeout=None):
            if params is not None:
                return search_pages[params["page"]]
            return make_response(content=b"jpeg-bytes")

        session.get.side_effect = get

        manifest = fetcher.fetch(total=3)

        assert [m["filename"] for m in manifest] == ["clinic-1.jpg", "clinic-2.jpg", "clinic-3.jpg"]
        assert [m["unsplash_id"] for m in manifest] == ["a", "b", "c"]
        assert (tmp_path / "clinic-1.jpg").read_bytes() == b"jpeg-bytes"

        saved = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))
        assert saved == manifest
        entry = saved[0]
        assert entry["photographer"] == "Photographer a"
        assert entry["profile"] == "https://unsplash.com/@a"
        assert entry["source"] == "https://unsplash.com/photos/a"

    def test_fetch_skips_failed_downloads(self, fetcher, session, tmp_path):
        """ダウンロード失敗はスキップ"""

        def get(url, params=None, headers=None, timeout=None):
            if params is not None:
                return make_response({"results": [make_photo("a"), make_photo("b")]})
            if "/b?" in url:
                return make_response(status_code=404)
            return make_response(content=b"jpeg-bytes")

        session.get.side_effect = get

        manifest = fetcher.fetch(total=2)

        assert [m["unsplash_id"] for m in manifest] == ["a"]
        assert not (tmp_path / "clinic-2.jpg").exists()

    def test_fetch_no_results(self, fetcher, session):
        """検索結果なしはImageFetchError"""
        session.get.return_value = make_response({"results": []})

        with pytest.raises(ImageFetchError):
            fetcher.fetch(total=2)

    def test_manifest_in_image_order(self, fetcher, session, tmp_path):
        """完了順ではなく画像番号順にマニフェストを書き出す"""
        fetcher.per_page = 4
        fetcher.concurrency = 4

        def get(url, params=None, headers=None, timeout=None):
            if params is not None:
                return make_response({"results": [make_photo(i) for i in ("a", "b", "c", "d")]})
            if "/a?" in url:
                time.sleep(0.05)
            return make_response(content=b"jpeg-bytes")

        session.get.side_effect = get

        manifest = fetcher.fetch(total=4)

        assert [m["filename"] for m in manifest] == [
            "clinic-1.jpg",
            "clinic-2.jpg",
            "clinic-3.jpg",
            "clinic-4.jpg",
        ]
        saved = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))
        assert [m["unsplash_id"] for m in saved] == ["a", "b", "c", "d"]

    def test_unexpected_worker_error_propagates(self, fetcher, session, tmp_path):
        """ダウンロード以外の想定外エラーは握りつぶさない"""
        broken = make_photo("a")
        broken["urls"] = "not-a-dict"
        session.get.return_value = make_response({"results": [broken]})

        with pytest.raises(AttributeError):
            fetcher.fetch(total=1)

        assert not (tmp_path / "manifest.json").exists()
