"""
Repository pattern for database operations.

Provides clean abstraction over SQLAlchemy for classification storage.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from newsdesk.database.models import NewsClassification, NewsCategoryLink


class NewsClassificationRepository:
    """Repository for NewsClassification operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_news_id(self, news_id: int) -> Optional[NewsClassification]:
        """Get a news item's classification with its ordered links loaded."""
        result = await self.session.execute(
            select(NewsClassification)
            .options(selectinload(NewsClassification.links))
            .where(NewsClassification.news_id == news_id)
        )
        return result.scalar_one_or_none()

    async def save(
        self,
        news_id: int,
        main_group: str,
        category_ids: List[int],
        primary_category_id: int,
    ) -> NewsClassification:
        """
        Store the classification of a news item, replacing any previous one.

        Args:
            news_id: Content record the classification belongs to
            main_group: MainGroup key
            category_ids: Sub-category ids in selection order
            primary_category_id: Primary category (must be in category_ids)

        Returns:
            The stored NewsClassification
        """
        links = [
            NewsCategoryLink(category_id=category_id, position=position)
            for position, category_id in enumerate(category_ids)
        ]

        classification = await self.get_by_news_id(news_id)
        if classification is None:
            classification = NewsClassification(
                news_id=news_id,
                main_group=main_group,
                primary_category_id=primary_category_id,
                links=links,
            )
            self.session.add(classification)
        else:
            classification.main_group = main_group
            classification.primary_category_id = primary_category_id
            classification.links = links
            # Link-only changes issue no UPDATE on this row, so onupdate would not fire
            classification.updated_at = datetime.utcnow()

        await self.session.flush()
        return classification

    async def delete(self, news_id: int) -> bool:
        """Delete a news item's classification."""
        classification = await self.get_by_news_id(news_id)
        if classification:
            await self.session.delete(classification)
            await self.session.flush()
            return True
        return False

    async def filter_news_ids(
        self,
        category_ids: List[int],
        skip: int = 0,
        limit: int = 20,
    ) -> List[int]:
        """
        Find news items tagged with ANY of the given sub-categories.

        Args:
            category_ids: Filter-mode selection (may span main groups);
                empty means no filter
            skip: Number of records to skip (pagination)
            limit: Maximum number of records to return

        Returns:
            News ids ordered by most recently classified first
        """
        query = select(NewsClassification.news_id)

        if category_ids:
            linked = select(NewsCategoryLink.news_id).where(
                NewsCategoryLink.category_id.in_(category_ids)
            )
            query = query.where(NewsClassification.news_id.in_(linked))

        query = (
            query.order_by(NewsClassification.updated_at.desc(), NewsClassification.news_id.desc())
            .offset(skip)
            .limit(limit)
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, category_ids: Optional[List[int]] = None) -> int:
        """Count classified news items, optionally restricted like filter_news_ids."""
        query = select(func.count()).select_from(NewsClassification)

        if category_ids:
            linked = select(NewsCategoryLink.news_id).where(
                NewsCategoryLink.category_id.in_(category_ids)
            )
            query = query.where(NewsClassification.news_id.in_(linked))

        result = await self.session.execute(query)
        return result.scalar_one()
