"""
Camp filtering and the lists derived from a camp snapshot
"""
from typing import Dict, Iterable, List, Sequence

from campfinder.models.camp import Camp, Category, FilterSpec

ALL = "all"


def search_text(camp: Camp) -> str:
    """Lower-cased text a search query is matched against"""
    parts = [
        camp.name,
        camp.description,
        camp.short_description,
        camp.primary_category,
        camp.city,
        " ".join(camp.activities),
    ]
    return " ".join(part or "" for part in parts).lower()


def camp_matches(camp: Camp, spec: FilterSpec) -> bool:
    """
    Return True when the camp passes every active criterion of the spec.

    A camp missing an age bound or a weekly cost is not excluded by the age
    or price criterion: only the bounds that are present are compared.
    """
    if spec.age is not None:
        if camp.age_min is not None and camp.age_min > spec.age:
            return False
        if camp.age_max is not None and camp.age_max < spec.age:
            return False

    if spec.max_price is not None:
        if camp.cost_per_week is not None and camp.cost_per_week > spec.max_price:
            return False

    if spec.city and spec.city != ALL:
        if camp.city != spec.city:
            return False

    if spec.category and spec.category != ALL:
        if camp.primary_category != spec.category:
            return False

    if spec.after_care and not camp.has_after_care:
        return False

    if spec.search_query:
        if spec.search_query.lower() not in search_text(camp):
            return False

    return True


def filter_camps(camps: Iterable[Camp], spec: FilterSpec) -> List[Camp]:
    return [camp for camp in camps if camp_matches(camp, spec)]


def unique_cities(camps: Iterable[Camp]) -> List[str]:
    return sorted({camp.city for camp in camps if camp.city})


def unique_categories(camps: Iterable[Camp]) -> List[str]:
    return sorted({camp.primary_category for camp in camps if camp.primary_category})


def derive_categories(camps: Iterable[Camp]) -> List[Category]:
    """
    Group camps by primary category when the Categories table is empty
    """
    counts: Dict[str, int] = {}
    for camp in camps:
        if camp.primary_category:
            counts[camp.primary_category] = counts.get(camp.primary_category, 0) + 1
    return [Category(name=name, camp_count=count) for name, count in counts.items()]


def featured_camps(camps: Sequence[Camp], limit: int = 6) -> List[Camp]:
    featured = [camp for camp in camps if camp.featured]
    if not featured:
        featured = list(camps[:limit])
    return featured[:limit]


def camp_stats(camps: Sequence[Camp]) -> Dict[str, object]:
    """
    Headline numbers for the homepage
    """
    age_mins = [camp.age_min for camp in camps if camp.age_min is not None]
    age_maxs = [camp.age_max for camp in camps if camp.age_max is not None]
    prices = [camp.cost_per_week for camp in camps if camp.cost_per_week is not None and camp.cost_per_week > 0]

    if age_mins and age_maxs:
        age_range = f"{min(age_mins)}-{max(age_maxs)}"
    else:
        age_range = "N/A"

    if not prices:
        price_range = "Varies"
    elif min(prices) == max(prices):
        price_range = f"${min(prices):g}"
    else:
        price_range = f"${min(prices):g}-${max(prices):g}"

    return {
        "total_camps": len(camps),
        "age_range": age_range,
        "price_range": price_range,
    }


def results_count_text(count: int) -> str:
    if count == 0:
        return "No camps found"
    if count == 1:
        return "1 camp found"
    return f"{count} camps found"
