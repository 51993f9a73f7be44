"""一覧画面の検索・フィルター・ソート"""

from dermclinics.models.clinic import Clinic, ClinicFilters


def search_clinics(clinics: list[Clinic], query: str | None) -> list[Clinic]:
    """
    名前・住所・カテゴリの部分一致検索（大文字小文字を無視）

    空のクエリは全件を返す
    """
    if not query or not query.strip():
        return list(clinics)

    needle = query.strip().lower()
    return [c for c in clinics if needle in c.searchable_text]


def _sort_key(clinic: Clinic, sort_by: str) -> float | str:
    if sort_by == "rating":
        return clinic.rating or 0
    if sort_by == "reviews":
        return clinic.user_rating_count or 0
    return (clinic.display_name or "").lower()


def apply_filters(clinics: list[Clinic], filters: ClinicFilters) -> list[Clinic]:
    """
    フィルター条件を適用し、指定があればソートする

    Args:
        clinics: クリニックリスト
        filters: フィルター・ソート条件

    Returns:
        条件に合うクリニックの新しいリスト
    """
    filtered = list(clinics)

    if filters.rating_min:
        filtered = [c for c in filtered if (c.rating or 0) >= filters.rating_min]

    if filters.has_website:
        filtered = [c for c in filtered if c.website and c.website.strip()]

    if filters.has_phone:
        filtered = [c for c in filtered if c.phone and c.phone.strip()]

    if filters.wheelchair_accessible:
        filtered = [
            c
            for c in filtered
            if c.accessibility_options
            and c.accessibility_options.wheelchair_accessible_entrance is True
        ]

    if filters.free_parking:
        filtered = [
            c
            for c in filtered
            if c.parking_options and c.parking_options.free_parking_lot is True
        ]

    if filters.open_now:
        filtered = [c for c in filtered if c.is_open_now]

    if filters.states:
        filtered = [c for c in filtered if c.state_code and c.state_code in filters.states]

    if filters.sort_by:
        # sortedは安定ソートなので同順位は元の順序を維持
        filtered = sorted(
            filtered,
            key=lambda c: _sort_key(c, filters.sort_by),
            reverse=filters.sort_order != "asc",
        )

    return filtered
