"""Primary store models

- ScrapedContent: one row per crawled URL, searched to ground chat answers
- Service: services/products inferred from page content
- MirrorOutbox: dedicated-store writes that failed and wait for replay
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helan_chat.models.base import Base, utcnow


class ScrapedContent(Base):
    """Page record

    extra_metadata holds the crawl method, the number of links found and the
    scrape timestamp.
    """

    __tablename__ = "scraped_content"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    extra_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    last_scraped: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<ScrapedContent(id={self.id}, url='{self.url}')>"


class Service(Base):
    """Service record

    price_from / price_to are decimal strings ("45", "12.50"). Names are unique
    case-insensitively, which is enforced by the content store, not the schema.
    """

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    price_from: Mapped[str | None] = mapped_column(String(20), nullable=True)
    price_to: Mapped[str | None] = mapped_column(String(20), nullable=True)
    price_unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_helan_service: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    source_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    extra_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}')>"


class OutboxKind(str, Enum):
    PAGE = "page"
    SERVICE = "service"


class MirrorOutbox(Base):
    """Pending write to the dedicated scraping store"""

    __tablename__ = "mirror_outbox"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
