"""
SQLAlchemy models for Newsdesk classification output.

The category catalog itself lives in the CMS backend; only the values a
content save submits (ordered sub-category ids and the primary id) are
stored here.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class NewsClassification(Base):
    """
    Category classification of one news item.

    Written from an edit-mode selection: one main group, 1-4 ordered
    sub-categories, and the primary category (always one of them).
    """
    __tablename__ = "news_classifications"

    news_id = Column(Integer, primary_key=True, autoincrement=False)

    main_group = Column(String(50), nullable=False)  # MainGroup key, e.g. "politics"
    primary_category_id = Column(Integer, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    links = relationship(
        "NewsCategoryLink",
        back_populates="classification",
        cascade="all, delete-orphan",
        order_by="NewsCategoryLink.position",
    )

    __table_args__ = (
        Index('ix_news_classifications_main_group', 'main_group'),
        Index('ix_news_classifications_primary_category_id', 'primary_category_id'),
    )

    @property
    def category_ids(self):
        """Sub-category ids in selection order."""
        return [link.category_id for link in self.links]


class NewsCategoryLink(Base):
    """One selected sub-category of a news item, with its selection position."""
    __tablename__ = "news_category_links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    news_id = Column(
        Integer,
        ForeignKey("news_classifications.news_id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False)  # 0 = first selected

    # Relationships
    classification = relationship("NewsClassification", back_populates="links")

    __table_args__ = (
        Index('ix_news_category_links_news_id', 'news_id'),
        Index('ix_news_category_links_category_id', 'category_id'),
    )
