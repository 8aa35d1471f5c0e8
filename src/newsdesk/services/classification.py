"""
Category Classification Engine for Newsdesk content.

Answers the questions the authoring and filtering surfaces ask about a
category selection, and computes the next selection for user actions:
- Edit mode: one main group (radio), 1-4 sub-categories of that group
- Filter mode: any number of sub-categories across all groups

The engine is a pure function of (catalog, selection). It never mutates its
selection; commands return an Accepted result carrying the new selection or
a Rejected result carrying a human-readable reason. Callers persist the
returned selection and rebuild the engine.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from newsdesk.taxonomy import Catalog, Category, MainGroup, MAIN_GROUPS, parse_main_group


logger = logging.getLogger(__name__)


MAX_SUB_CATEGORIES = 4

REASON_SELECT_MAIN_FIRST = "Select a main category first"
REASON_MAXIMUM_REACHED = f"Maximum of {MAX_SUB_CATEGORIES} sub-categories already selected"
REASON_PRIMARY_EDIT_ONLY = "Primary category is only available when editing"


@dataclass(frozen=True)
class EditSelection:
    """
    Authoring-form selection: at most one main group and up to four of its
    sub-categories, in the order they were chosen.

    ``primary_id`` is an explicit primary override; when None the first
    chosen id is primary.
    """
    group: Optional[MainGroup] = None
    ids: Tuple[int, ...] = ()
    primary_id: Optional[int] = None


@dataclass(frozen=True)
class FilterSelection:
    """Listing/sharing filter selection: any ids, any groups, no cap."""
    ids: Tuple[int, ...] = ()


Selection = Union[EditSelection, FilterSelection]


@dataclass(frozen=True)
class Accepted:
    """A command succeeded; ``selection`` is the state the caller must keep."""
    selection: Selection
    cleared_ids: Tuple[int, ...] = field(default=())

    success = True
    message = None

    @property
    def new_selected_ids(self) -> List[int]:
        return list(self.selection.ids)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": True, "new_selected_ids": self.new_selected_ids}


@dataclass(frozen=True)
class Rejected:
    """A command was refused; the caller keeps its current state."""
    message: str

    success = False
    new_selected_ids = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


CommandResult = Union[Accepted, Rejected]


class ClassificationEngine:
    """
    Query/command object over a category catalog and one selection snapshot.

    The snapshot is trusted for reads and never repaired. Invariants (group
    exclusivity, the four-item cap, primary membership) are guaranteed only
    for selections produced by this engine's commands.
    """

    def __init__(self, catalog: Catalog, selection: Selection):
        self.catalog = catalog
        self.selection = selection

    @classmethod
    def for_edit(
        cls,
        catalog: Catalog,
        selected_ids: Iterable[int] = (),
        main_group: Optional[MainGroup] = None,
        primary_id: Optional[int] = None,
    ) -> "ClassificationEngine":
        """
        Build an edit-mode engine (radio main group, capped sub-categories).

        ``main_group`` may be a MainGroup or its key; an unknown key means no
        main group is active.
        """
        group = parse_main_group(main_group) if main_group is not None else None
        return cls(catalog, EditSelection(group, _ordered_unique(selected_ids), primary_id))

    @classmethod
    def for_filter(cls, catalog: Catalog, selected_ids: Iterable[int] = ()) -> "ClassificationEngine":
        """Build a filter-mode engine (cross-group, uncapped)."""
        return cls(catalog, FilterSelection(_ordered_unique(selected_ids)))

    @property
    def is_edit_mode(self) -> bool:
        return isinstance(self.selection, EditSelection)

    @property
    def selected_ids(self) -> List[int]:
        return list(self.selection.ids)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def main_groups(self) -> List[MainGroup]:
        return list(MAIN_GROUPS)

    def sub_categories_for(self, group: MainGroup) -> List[Category]:
        return self.catalog.for_group(group)

    def all_categories_for(self, group: MainGroup) -> List[Category]:
        # Same partition; kept separate for filter panels that only count
        return self.catalog.for_group(group)

    def is_selected(self, category_id: int) -> bool:
        return category_id in self.selection.ids

    def is_disabled(self, category_id: int) -> bool:
        return self.disabled_reason(category_id) is not None

    def disabled_reason(self, category_id: int) -> Optional[str]:
        """
        Why ``category_id`` cannot be selected right now, or None.

        Only edit mode disables anything. Group mismatch is reported before
        the cap, and an already selected id is never capped.
        """
        if not isinstance(self.selection, EditSelection):
            return None

        group = self.selection.group
        if group is None or self.catalog.group_of(category_id) != group:
            return REASON_SELECT_MAIN_FIRST

        if not self.is_selected(category_id) and len(self.selection.ids) >= MAX_SUB_CATEGORIES:
            return REASON_MAXIMUM_REACHED

        return None

    def primary_category(self) -> Optional[Category]:
        """
        The category representing the content's principal classification.

        An explicit primary wins while it is still selected; otherwise the
        earliest selected id is primary. None when nothing is selected.
        """
        primary_id = self.primary_category_id()
        if primary_id is None:
            return None
        return self.catalog.get(primary_id)

    def primary_category_id(self) -> Optional[int]:
        ids = self.selection.ids
        if not ids:
            return None
        explicit = getattr(self.selection, "primary_id", None)
        if explicit is not None and explicit in ids:
            return explicit
        return ids[0]

    def selected_categories(self) -> List[Category]:
        categories = []
        for category_id in self.selection.ids:
            category = self.catalog.get(category_id)
            if category is not None:
                categories.append(category)
        return categories

    def selected_count_for(self, group: MainGroup) -> int:
        return sum(1 for c in self.catalog.for_group(group) if self.is_selected(c.category_id))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def select_main_group(self, group: MainGroup) -> Accepted:
        """
        Switch the active main group.

        Always succeeds in edit mode and clears every sub-category, since
        sub-categories of one group mean nothing under another. Filter mode
        has no main group; the selection is returned unchanged.

        Raises:
            ValueError: If ``group`` is neither a MainGroup nor one of its keys
        """
        if not isinstance(self.selection, EditSelection):
            return Accepted(self.selection)

        group = parse_main_group(group)
        if group is None:
            raise ValueError("Unknown main group")

        cleared = self.selection.ids
        if cleared:
            logger.debug(f"Main group -> {group.value}; clearing sub-categories {list(cleared)}")
        return Accepted(EditSelection(group=group), cleared_ids=cleared)

    def toggle_sub_category(self, category_id: int) -> CommandResult:
        """
        Add ``category_id`` to the selection, or remove it if already selected.

        Removal always succeeds. Addition is refused with the disabled
        reason when the id is disabled; otherwise the id is appended.
        """
        ids = self.selection.ids

        if category_id in ids:
            remaining = tuple(i for i in ids if i != category_id)
            if isinstance(self.selection, EditSelection):
                primary_id = self.selection.primary_id
                if primary_id == category_id:
                    primary_id = None
                return Accepted(replace(self.selection, ids=remaining, primary_id=primary_id))
            return Accepted(replace(self.selection, ids=remaining))

        reason = self.disabled_reason(category_id)
        if reason is not None:
            logger.debug(f"Rejected sub-category {category_id}: {reason}")
            return Rejected(reason)

        return Accepted(replace(self.selection, ids=ids + (category_id,)))

    def set_primary_category(self, category_id: int) -> CommandResult:
        """
        Make ``category_id`` the primary category (edit mode only).

        An unselected id is first added under the same rules as a toggle.
        """
        if not isinstance(self.selection, EditSelection):
            return Rejected(REASON_PRIMARY_EDIT_ONLY)

        selection = self.selection
        if category_id not in selection.ids:
            result = self.toggle_sub_category(category_id)
            if not result.success:
                return result
            selection = result.selection

        return Accepted(replace(selection, primary_id=category_id))


def _ordered_unique(ids: Iterable[int]) -> Tuple[int, ...]:
    """Drop repeated ids, keeping first-selection order."""
    seen = set()
    ordered = []
    for category_id in ids:
        if category_id not in seen:
            seen.add(category_id)
            ordered.append(category_id)
    return tuple(ordered)
