"""
Caller-side category selection state.

The classification engine is stateless; these holders own the selection for
one open authoring form or one filter panel, apply engine commands, keep the
returned state, and surface rejections as transient notices.
"""

import json
import time
from typing import Any, Dict, List, Optional

from newsdesk.config import settings
from newsdesk.taxonomy import Catalog, MainGroup
from newsdesk.services.classification import (
    ClassificationEngine,
    CommandResult,
    EditSelection,
    FilterSelection,
)


class ClassificationValidationError(Exception):
    """Raised when a category selection is not ready to be submitted."""
    pass


class Notice:
    """Transient, auto-dismissing UI notice."""

    def __init__(
        self,
        kind: str,
        text: str,
        ttl_seconds: Optional[float] = None,
        created_at: Optional[float] = None,
    ):
        self.kind = kind
        self.text = text
        self.ttl_seconds = settings.NOTICE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.created_at = time.monotonic() if created_at is None else created_at

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.created_at >= self.ttl_seconds

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind, "text": self.text}


class CategoryForm:
    """
    Category selection for one content authoring form (edit mode).

    Flow:
        1. choose_main_group() - radio choice, clears sub-categories
        2. toggle() - checkbox choice, 1-4 sub-categories
        3. choose_primary() - optional, defaults to the first sub-category
        4. to_submission() - validated values for the content save request
    """

    def __init__(self, catalog: Catalog, selection: Optional[EditSelection] = None):
        self.catalog = catalog
        self.selection = selection or EditSelection()
        self.notice: Optional[Notice] = None

    @property
    def engine(self) -> ClassificationEngine:
        return ClassificationEngine(self.catalog, self.selection)

    def choose_main_group(self, group: MainGroup) -> CommandResult:
        return self._apply(self.engine.select_main_group(group))

    def toggle(self, category_id: int) -> CommandResult:
        return self._apply(self.engine.toggle_sub_category(category_id))

    def choose_primary(self, category_id: int) -> CommandResult:
        return self._apply(self.engine.set_primary_category(category_id))

    def _apply(self, result: CommandResult) -> CommandResult:
        if result.success:
            self.selection = result.selection
            self.notice = None
        else:
            self.notice = Notice("error", result.message or "Cannot select this category")
        return result

    def current_notice(self, now: Optional[float] = None) -> Optional[Notice]:
        if self.notice is not None and self.notice.is_expired(now):
            self.notice = None
        return self.notice

    def validate(self) -> List[str]:
        """Return submission errors in the order the form reports them."""
        errors = []
        if self.selection.group is None:
            errors.append("Please select a main category")
        if not self.selection.ids:
            errors.append("Please select at least one category")
        if self.engine.primary_category_id() is None:
            errors.append("Please select a primary category")
        return errors

    def to_submission(self) -> Dict[str, str]:
        """
        Serialize the selection for the content save request.

        Raises:
            ClassificationValidationError: If the selection is incomplete
        """
        errors = self.validate()
        if errors:
            raise ClassificationValidationError(errors[0])

        return {
            "main_group": self.selection.group.value,
            "category_ids": json.dumps(list(self.selection.ids)),
            "primary_category_id": str(self.engine.primary_category_id()),
        }

    def reset(self):
        """Discard the selection, e.g. after a successful submit."""
        self.selection = EditSelection()
        self.notice = None


def replay_submission(
    catalog: Catalog,
    main_group: MainGroup,
    category_ids: List[int],
    primary_category_id: Optional[int] = None,
) -> CategoryForm:
    """
    Rebuild a submitted classification through the engine's own commands.

    Submissions arriving over HTTP are not trusted to satisfy the edit-mode
    rules; replaying them guarantees the stored state is one the engine
    could have produced.

    Raises:
        ClassificationValidationError: If any step is rejected or the
            result is incomplete
    """
    form = CategoryForm(catalog)
    form.choose_main_group(main_group)

    for category_id in dict.fromkeys(category_ids):
        result = form.toggle(category_id)
        if not result.success:
            raise ClassificationValidationError(f"Category {category_id}: {result.message}")

    if primary_category_id is not None:
        if primary_category_id not in form.selection.ids:
            raise ClassificationValidationError(
                f"Primary category {primary_category_id} must be one of the selected categories"
            )
        form.choose_primary(primary_category_id)

    errors = form.validate()
    if errors:
        raise ClassificationValidationError(errors[0])
    return form


class FilterPanel:
    """Category filter for listing and sharing screens (filter mode)."""

    def __init__(self, catalog: Catalog, selected_ids: Optional[List[int]] = None):
        self.catalog = catalog
        self.selection = ClassificationEngine.for_filter(catalog, selected_ids or ()).selection

    @property
    def engine(self) -> ClassificationEngine:
        return ClassificationEngine(self.catalog, self.selection)

    @property
    def selected_ids(self) -> List[int]:
        return list(self.selection.ids)

    def toggle(self, category_id: int) -> CommandResult:
        result = self.engine.toggle_sub_category(category_id)
        if result.success:
            self.selection = result.selection
        return result

    def clear(self):
        self.selection = FilterSelection()

    def group_counts(self) -> List[Dict[str, Any]]:
        """Selected/total per main group, in display order."""
        engine = self.engine
        return [
            {
                "group": group.value,
                "selected": engine.selected_count_for(group),
                "total": len(engine.all_categories_for(group)),
            }
            for group in engine.main_groups()
        ]

    def query_params(self) -> Dict[str, str]:
        if not self.selection.ids:
            return {}
        return {"category_ids": json.dumps(list(self.selection.ids))}
