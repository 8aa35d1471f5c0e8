"""
Two-tier category taxonomy for Newsdesk content.

The taxonomy has 2 levels:
- Main Group (9 fixed keys: live-world, counties, politics, ...)
- Sub-category (catalog records, each belonging to exactly one main group)

Main groups are not stored anywhere; they partition the category catalog.
A category's group comes from its explicit ``parent`` field when present,
otherwise from the slug convention ``<group-key>`` / ``<group-key>-...``.
"""

import enum
import logging
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)


class MainGroup(str, enum.Enum):
    """Top-level classification keys (declaration order is display order)."""
    LIVE_WORLD = "live-world"
    COUNTIES = "counties"
    POLITICS = "politics"
    BUSINESS = "business"
    OPINION = "opinion"
    SPORTS = "sports"
    LIFESTYLE = "lifestyle"
    ENTERTAINMENT = "entertainment"
    TECH = "tech"


MAIN_GROUPS: List[MainGroup] = list(MainGroup)

# Display metadata used by the admin surfaces
GROUP_COLORS: Dict[MainGroup, str] = {
    MainGroup.LIVE_WORLD: "#dc2626",
    MainGroup.COUNTIES: "#059669",
    MainGroup.POLITICS: "#1d4ed8",
    MainGroup.BUSINESS: "#b45309",
    MainGroup.OPINION: "#7c3aed",
    MainGroup.SPORTS: "#16a34a",
    MainGroup.LIFESTYLE: "#db2777",
    MainGroup.ENTERTAINMENT: "#ea580c",
    MainGroup.TECH: "#0891b2",
}

GROUP_ICONS: Dict[MainGroup, str] = {
    MainGroup.LIVE_WORLD: "🌍",
    MainGroup.COUNTIES: "📍",
    MainGroup.POLITICS: "🏛️",
    MainGroup.BUSINESS: "💼",
    MainGroup.OPINION: "💬",
    MainGroup.SPORTS: "⚽",
    MainGroup.LIFESTYLE: "🌿",
    MainGroup.ENTERTAINMENT: "🎬",
    MainGroup.TECH: "💻",
}

DEFAULT_GROUP_COLOR = "#6b7280"
DEFAULT_GROUP_ICON = "📁"


def group_color(group: Optional[MainGroup]) -> str:
    return GROUP_COLORS.get(group, DEFAULT_GROUP_COLOR)


def group_icon(group: Optional[MainGroup]) -> str:
    return GROUP_ICONS.get(group, DEFAULT_GROUP_ICON)


class Category(BaseModel):
    """A sub-category record as served by the catalog endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    category_id: int
    name: str
    slug: str
    parent: Optional[str] = Field(default=None, alias="group")


def normalize_group_key(value: str) -> str:
    """
    Normalize a free-form group label to main group key form.

    "Live World" -> "live-world", "live_world" -> "live-world",
    "Business & Finance" -> "business-finance".
    """
    key = value.strip().lower().replace("&", " ").replace("_", " ")
    return "-".join(key.split())


def parse_main_group(value: Any) -> Optional[MainGroup]:
    """Return the MainGroup named by ``value``, or None if it names none."""
    if isinstance(value, MainGroup):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return MainGroup(normalize_group_key(value))
    except ValueError:
        return None


def resolve_group(category: Category) -> Optional[MainGroup]:
    """
    Determine which main group a category belongs to.

    Resolution order:
        1. Explicit ``parent`` field naming a main group
        2. Slug equal to a group key, or prefixed by ``<group-key>-``
        3. None (ungrouped)
    """
    if category.parent:
        group = parse_main_group(category.parent)
        if group is not None:
            return group

    slug = category.slug.strip().lower()
    # Longest keys first so a longer key is never shadowed by a shorter prefix
    for group in sorted(MAIN_GROUPS, key=lambda g: len(g.value), reverse=True):
        if slug == group.value or slug.startswith(f"{group.value}-"):
            return group

    return None


class Catalog:
    """
    Immutable, ordered category catalog partitioned by main group.

    Built once per session from the catalog endpoint payload and shared
    read-only between any number of classification engines.
    """

    def __init__(self, categories: List[Category]):
        ordered: List[Category] = []
        by_id: Dict[int, Category] = {}
        groups: Dict[int, Optional[MainGroup]] = {}

        for category in categories:
            if category.category_id in by_id:
                logger.warning(
                    f"Duplicate category_id {category.category_id} in catalog "
                    f"(slug={category.slug!r}); keeping first occurrence"
                )
                continue
            by_id[category.category_id] = category
            groups[category.category_id] = resolve_group(category)
            ordered.append(category)

        self._categories = tuple(ordered)
        self._by_id = by_id
        self._groups = groups
        self._partitions: Dict[MainGroup, tuple] = {
            group: tuple(c for c in ordered if groups[c.category_id] is group)
            for group in MAIN_GROUPS
        }

        ungrouped = self.ungrouped()
        if ungrouped:
            logger.warning(
                f"{len(ungrouped)} categories match no main group: "
                f"{', '.join(c.slug for c in ungrouped)}"
            )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Catalog":
        """
        Build a catalog from a ``{"categories": [...]}`` response body.

        A missing or null ``categories`` key yields an empty catalog.
        Raises pydantic.ValidationError for malformed records.
        """
        records = payload.get("categories") or []
        return cls([Category.model_validate(record) for record in records])

    def __len__(self) -> int:
        return len(self._categories)

    def __iter__(self) -> Iterator[Category]:
        return iter(self._categories)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._by_id

    def get(self, category_id: int) -> Optional[Category]:
        return self._by_id.get(category_id)

    def group_of(self, category_id: int) -> Optional[MainGroup]:
        """Main group of a category id; None if ungrouped or unknown."""
        return self._groups.get(category_id)

    def for_group(self, group: MainGroup) -> List[Category]:
        return list(self._partitions.get(group, ()))

    def ungrouped(self) -> List[Category]:
        return [c for c in self._categories if self._groups[c.category_id] is None]
