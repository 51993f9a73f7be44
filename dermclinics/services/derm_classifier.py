"""キーワードによる皮膚科クリニック判定"""

import logging
import re
from typing import Any

from dermclinics.config import config

logger = logging.getLogger(__name__)

SKIN_CARE_TYPE = "skin_care_clinic"
NEARBY_NAME_HINTS = ("derm", "skin", "dermatology")


class DermClassifier:
    """皮膚科クリニック判定フィルター"""

    def __init__(self, keywords: list[str] | None = None) -> None:
        """
        Args:
            keywords: 判定キーワード（正規表現の断片）。指定なしで設定ファイルから読み込み
        """
        self._keywords = list(keywords if keywords is not None else config.derm_keywords)
        self._pattern = self._compile()

    def _compile(self) -> re.Pattern[str] | None:
        if not self._keywords:
            return None
        return re.compile(
            "|".join(f"(?:{kw})" for kw in self._keywords), re.IGNORECASE
        )

    @property
    def keywords(self) -> list[str]:
        """判定キーワード一覧"""
        return self._keywords.copy()

    def accepts(self, place: dict[str, Any]) -> bool:
        """
        収集時の判定: 名前とWebサイトURLにキーワードが含まれるか

        Args:
            place: Places APIのplace

        Returns:
            皮膚科クリニックと判定した場合True
        """
        if self._pattern is None:
            return False
        name = ((place.get("displayName") or {}).get("text") or "").lower()
        website = (place.get("websiteUri") or "").lower()
        return bool(self._pattern.search(f"{name} {website}"))

    def is_nearby_dermatology(self, place: dict[str, Any]) -> bool:
        """周辺検索時の判定: skin_care_clinicタイプまたは名前ヒント"""
        types = place.get("types") or []
        if SKIN_CARE_TYPE in types or place.get("primaryType") == SKIN_CARE_TYPE:
            return True
        name = ((place.get("displayName") or {}).get("text") or "").lower()
        return any(hint in name for hint in NEARBY_NAME_HINTS)

    def filter(self, places: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        皮膚科と判定されなかったplaceを除外

        Args:
            places: Places APIのplaceリスト

        Returns:
            フィルタリング後のリスト
        """
        accepted = []
        rejected_count = 0

        for place in places:
            if self.accepts(place):
                accepted.append(place)
            else:
                rejected_count += 1
                logger.debug(f"Rejected: {(place.get('displayName') or {}).get('text')}")

        logger.info(f"Rejected {rejected_count} places by derm keywords")
        return accepted

    def add_keyword(self, keyword: str) -> None:
        """判定キーワードを追加"""
        keyword = keyword.strip()
        if not keyword or keyword in self._keywords:
            return
        try:
            re.compile(keyword)
        except re.error as e:
            raise ValueError(f"Invalid keyword pattern: {keyword} ({e})") from e
        self._keywords.append(keyword)
        self._pattern = self._compile()
        logger.info(f"Added derm keyword: {keyword}")

    def remove_keyword(self, keyword: str) -> None:
        """判定キーワードを削除"""
        if keyword in self._keywords:
            self._keywords.remove(keyword)
            self._pattern = self._compile()
            logger.info(f"Removed derm keyword: {keyword}")

    def save(self) -> None:
        """現在のキーワードを設定ファイルに保存"""
        config.update_derm_keywords(self._keywords)
        logger.info("Saved derm keywords to config file")
