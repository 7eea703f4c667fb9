"""Daily article produced by content generation, and the dispatch pointer."""

import uuid

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lingualetter.models.base import Base

LATEST_ARTICLE_POINTER = "latest_article"


class Article(Base):
    """A generated Korean article with its English learning notes."""

    __tablename__ = "articles"

    trend_topic: Mapped[str] = mapped_column(String(255), nullable=False)
    korean_article: Mapped[str] = mapped_column(Text, nullable=False)
    english_translation: Mapped[str] = mapped_column(Text, nullable=False)
    expression: Mapped[str] = mapped_column(String(255), nullable=False)
    literal_translation: Mapped[str] = mapped_column(String(255), nullable=False)
    idiomatic_translation: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Article {self.id} {self.trend_topic!r}>"


class DispatchPointer(Base):
    """Durable named pointer to an article, read by the newsletter dispatch."""

    __tablename__ = "dispatch_pointers"

    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
    )
