"""Dedicated scraping store models

Uses its own ScrapingBase (separate metadata) and lives in scraping.db,
apart from the primary app.db.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from helan_chat.models.base import utcnow


class ScrapingBase(DeclarativeBase):
    pass


class ScrapingContent(ScrapingBase):
    """Mirror of a page record"""

    __tablename__ = "scraping_content"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    extra_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    scraped_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class ExtractedService(ScrapingBase):
    """Mirror of a service record"""

    __tablename__ = "extracted_services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    price_from: Mapped[str | None] = mapped_column(String(20), nullable=True)
    price_to: Mapped[str | None] = mapped_column(String(20), nullable=True)
    price_unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_helan_service: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    extracted_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    extra_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
