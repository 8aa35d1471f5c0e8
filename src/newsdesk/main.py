"""
Newsdesk FastAPI application.

Serves the category classification engine to the authoring (edit mode) and
listing/sharing (filter mode) surfaces, and stores the classification output
of saved news items.
"""

import json
import logging
from typing import List, Optional

from fastapi import FastAPI, Depends, Query, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk import __version__
from newsdesk.config import settings
from newsdesk.database.session import get_db
from newsdesk.database.repositories import NewsClassificationRepository
from newsdesk.taxonomy import Catalog, Category, MainGroup, group_color, group_icon
from newsdesk.services.catalog_client import CatalogCache, CatalogClient, CatalogClientError
from newsdesk.services.category_form import (
    ClassificationValidationError,
    FilterPanel,
    replay_submission,
)
from newsdesk.services.classification import (
    ClassificationEngine,
    CommandResult,
    MAX_SUB_CATEGORIES,
)


logger = logging.getLogger(__name__)


# Create FastAPI application
app = FastAPI(
    title="Newsdesk API",
    description="News CMS category classification - main groups, sub-categories and filters",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global catalog cache (one catalog per process, refreshed after CATALOG_CACHE_SECONDS)
catalog_cache = CatalogCache(CatalogClient())


@app.on_event("startup")
async def startup_event():
    """Configure logging on application startup."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Newsdesk API starting (catalog: {catalog_cache.client.url})")


async def get_catalog() -> Catalog:
    """
    FastAPI dependency for the category catalog.

    Raises:
        HTTPException: 502 if the catalog endpoint is unavailable
    """
    try:
        return await catalog_cache.get()
    except CatalogClientError as e:
        logger.error(f"Category catalog unavailable: {e}")
        raise HTTPException(status_code=502, detail="Category catalog unavailable")


# Pydantic models for classification endpoints
class EditStateRequest(BaseModel):
    """Edit-mode selection snapshot held by the authoring form."""
    main_group: Optional[MainGroup] = None
    selected_ids: List[int] = []
    primary_category_id: Optional[int] = None


class EditMainGroupRequest(EditStateRequest):
    """Request model for switching the main group."""
    new_main_group: MainGroup


class EditToggleRequest(EditStateRequest):
    """Request model for toggling (or making primary) a sub-category."""
    category_id: int


class FilterStateRequest(BaseModel):
    """Filter-mode selection snapshot held by a listing or sharing panel."""
    selected_ids: List[int] = []


class FilterToggleRequest(FilterStateRequest):
    """Request model for toggling a filter sub-category."""
    category_id: int


class NewsClassificationRequest(BaseModel):
    """Classification values submitted with a news item."""
    main_group: MainGroup
    category_ids: List[int]
    primary_category_id: Optional[int] = None


def _category_dict(category: Category, catalog: Catalog) -> dict:
    group = catalog.group_of(category.category_id)
    return {
        "category_id": category.category_id,
        "name": category.name,
        "slug": category.slug,
        "group": group.value if group else None,
    }


def _edit_engine(request: EditStateRequest, catalog: Catalog) -> ClassificationEngine:
    return ClassificationEngine.for_edit(
        catalog,
        request.selected_ids,
        main_group=request.main_group,
        primary_id=request.primary_category_id,
    )


def _edit_state(engine: ClassificationEngine) -> dict:
    """Everything the authoring form renders for one selection."""
    selection = engine.selection
    active = selection.group
    primary = engine.primary_category()

    sub_categories = []
    if active is not None:
        for category in engine.sub_categories_for(active):
            reason = engine.disabled_reason(category.category_id)
            sub_categories.append({
                **_category_dict(category, engine.catalog),
                "selected": engine.is_selected(category.category_id),
                "disabled": reason is not None,
                "disabled_reason": reason,
            })

    return {
        "main_group": active.value if active else None,
        "main_groups": [
            {
                "key": group.value,
                "color": group_color(group),
                "icon": group_icon(group),
                "selected": group is active,
            }
            for group in engine.main_groups()
        ],
        "sub_categories": sub_categories,
        "selected_ids": engine.selected_ids,
        "selected_count": len(engine.selected_ids),
        "max_selected": MAX_SUB_CATEGORIES,
        "primary_category_id": primary.category_id if primary else None,
        "primary_category": _category_dict(primary, engine.catalog) if primary else None,
    }


def _edit_command_response(
    result: CommandResult,
    engine: ClassificationEngine,
) -> dict:
    """Command result plus the state the form should render next."""
    response = result.to_dict()
    if result.success:
        next_engine = ClassificationEngine(engine.catalog, result.selection)
        response["cleared_ids"] = list(result.cleared_ids)
    else:
        next_engine = engine
    response["state"] = _edit_state(next_engine)
    return response


def _parse_category_ids(raw: Optional[str]) -> List[int]:
    """Parse the JSON-encoded ``category_ids`` query parameter."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="category_ids must be a JSON array of integers")
    if not isinstance(value, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in value
    ):
        raise HTTPException(status_code=400, detail="category_ids must be a JSON array of integers")
    return value


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns basic service status.
    """
    return {
        "status": "healthy",
        "service": "newsdesk-api",
        "version": __version__,
    }


@app.get("/api/categories")
async def list_categories(catalog: Catalog = Depends(get_catalog)):
    """
    List the category catalog grouped by main group.

    Returns:
        Groups in display order with their sub-categories, plus any
        categories that match no main group
    """
    return {
        "groups": [
            {
                "key": group.value,
                "color": group_color(group),
                "icon": group_icon(group),
                "categories": [_category_dict(c, catalog) for c in catalog.for_group(group)],
            }
            for group in MainGroup
        ],
        "ungrouped": [_category_dict(c, catalog) for c in catalog.ungrouped()],
        "count": len(catalog),
    }


@app.post("/api/classification/edit/state")
async def edit_state(request: EditStateRequest, catalog: Catalog = Depends(get_catalog)):
    """Render state for an authoring form's category selection."""
    return _edit_state(_edit_engine(request, catalog))


@app.post("/api/classification/edit/main-group")
async def edit_select_main_group(
    request: EditMainGroupRequest,
    catalog: Catalog = Depends(get_catalog)
):
    """
    Switch the main group of an authoring form.

    Always succeeds; the returned state has no sub-categories selected and
    ``cleared_ids`` lists what was dropped.
    """
    engine = _edit_engine(request, catalog)
    return _edit_command_response(engine.select_main_group(request.new_main_group), engine)


@app.post("/api/classification/edit/toggle")
async def edit_toggle(request: EditToggleRequest, catalog: Catalog = Depends(get_catalog)):
    """
    Toggle a sub-category on an authoring form.

    A refused toggle is not an HTTP error: the response has
    ``success: false`` and a ``message`` for a transient notice, and the
    state is unchanged.
    """
    engine = _edit_engine(request, catalog)
    return _edit_command_response(engine.toggle_sub_category(request.category_id), engine)


@app.post("/api/classification/edit/primary")
async def edit_set_primary(request: EditToggleRequest, catalog: Catalog = Depends(get_catalog)):
    """Make a sub-category the primary category (adding it if needed)."""
    engine = _edit_engine(request, catalog)
    return _edit_command_response(engine.set_primary_category(request.category_id), engine)


@app.post("/api/classification/filter/state")
async def filter_state(request: FilterStateRequest, catalog: Catalog = Depends(get_catalog)):
    """Selected/total counts per main group for a filter panel."""
    panel = FilterPanel(catalog, request.selected_ids)
    return {
        "selected_ids": panel.selected_ids,
        "groups": panel.group_counts(),
        "query": panel.query_params(),
    }


@app.post("/api/classification/filter/toggle")
async def filter_toggle(request: FilterToggleRequest, catalog: Catalog = Depends(get_catalog)):
    """Toggle a sub-category on a filter panel (never refused)."""
    panel = FilterPanel(catalog, request.selected_ids)
    result = panel.toggle(request.category_id)
    response = result.to_dict()
    response["query"] = panel.query_params()
    return response


@app.put("/api/admin/news/{news_id}/categories")
async def admin_save_news_categories(
    news_id: int,
    request: NewsClassificationRequest,
    catalog: Catalog = Depends(get_catalog),
    db: AsyncSession = Depends(get_db)
):
    """
    Store the classification of a news item (admin only).

    The submission is replayed through an edit-mode engine, so it is held
    to the same rules as the authoring form.

    Raises:
        HTTPException: 400 if the classification breaks a selection rule
    """
    try:
        form = replay_submission(
            catalog,
            request.main_group,
            request.category_ids,
            request.primary_category_id,
        )
    except ClassificationValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        repo = NewsClassificationRepository(db)
        classification = await repo.save(
            news_id=news_id,
            main_group=form.selection.group.value,
            category_ids=list(form.selection.ids),
            primary_category_id=form.engine.primary_category_id(),
        )
        await db.commit()

        return _classification_dict(classification)

    except Exception:
        await db.rollback()
        logger.exception(f"Error saving categories for news {news_id}")
        raise HTTPException(status_code=500, detail="Failed to save news categories")


@app.get("/api/admin/news/{news_id}/categories")
async def admin_get_news_categories(news_id: int, db: AsyncSession = Depends(get_db)):
    """Get the stored classification of a news item (admin only)."""
    repo = NewsClassificationRepository(db)
    classification = await repo.get_by_news_id(news_id)
    if not classification:
        raise HTTPException(status_code=404, detail="News classification not found")
    return _classification_dict(classification)


@app.delete("/api/admin/news/{news_id}/categories")
async def admin_delete_news_categories(news_id: int, db: AsyncSession = Depends(get_db)):
    """Remove the stored classification of a news item (admin only)."""
    try:
        repo = NewsClassificationRepository(db)
        deleted = await repo.delete(news_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="News classification not found")
        await db.commit()
        return {"success": True, "news_id": news_id}

    except HTTPException:
        raise
    except Exception:
        await db.rollback()
        logger.exception(f"Error deleting categories for news {news_id}")
        raise HTTPException(status_code=500, detail="Failed to delete news categories")


@app.get("/api/admin/news")
async def admin_filter_news(
    category_ids: Optional[str] = Query(None, description="JSON array of sub-category ids"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of records to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    List news ids classified under ANY of the given sub-categories.

    Args:
        category_ids: Filter-mode selection, e.g. ``[10, 20]`` (may span
            main groups); omitted means no filter
        skip: Offset for pagination (default: 0)
        limit: Number of records to return (default: 20, max: 100)
        db: Database session

    Returns:
        Matching news ids, most recently classified first
    """
    ids = _parse_category_ids(category_ids)

    repo = NewsClassificationRepository(db)
    news_ids = await repo.filter_news_ids(ids, skip=skip, limit=limit)
    total = await repo.count(ids)

    return {
        "news_ids": news_ids,
        "category_ids": ids,
        "pagination": {
            "skip": skip,
            "limit": limit,
            "count": len(news_ids),
            "total": total,
        }
    }


def _classification_dict(classification) -> dict:
    return {
        "news_id": classification.news_id,
        "main_group": classification.main_group,
        "category_ids": classification.category_ids,
        "primary_category_id": classification.primary_category_id,
        "created_at": classification.created_at.isoformat() if classification.created_at else None,
        "updated_at": classification.updated_at.isoformat() if classification.updated_at else None,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "newsdesk.main:app",
        host=settings.SERVICE_HOST,
        port=settings.SERVICE_PORT,
        reload=True,
    )
