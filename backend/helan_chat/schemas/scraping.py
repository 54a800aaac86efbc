"""Scraping pipeline schemas"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CrawlMethod(str, Enum):
    """How a page reached the store, recorded in its metadata"""

    FETCH = "fetch"  # page seed
    FETCH_SUBPAGE = "fetch-subpage"  # link followed from a page seed
    FETCH_SITEMAP = "fetch-sitemap"  # URL declared by a sitemap seed


class CrawlState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class CrawlSeeds(BaseModel):
    """Starting points of a crawl run"""

    sitemap_urls: list[str] = Field(default_factory=list)
    page_urls: list[str] = Field(default_factory=list)


class PageRecordCreate(BaseModel):
    """Page write handed to the content store"""

    url: str
    title: str = ""
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class CrawlSummary(BaseModel):
    """Outcome of one crawl run"""

    started_at: datetime
    finished_at: datetime | None = None
    sitemaps_resolved: int = 0
    pages_stored: int = 0
    pages_failed: int = 0
    pages_skipped_fresh: int = 0
    links_followed: int = 0
    failed_urls: list[str] = Field(default_factory=list)


class ServiceArchetype(BaseModel):
    """Known service pattern: canonical name, category and keyword phrases"""

    name: str
    category: str
    keywords: list[str] = Field(min_length=1)


class ServiceCandidate(BaseModel):
    """Provisional service inferred from one page"""

    name: str
    description: str
    category: str
    price_from: str | None = None
    price_to: str | None = None
    price_unit: str | None = None
    is_helan_service: bool = True
    source_url: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ServiceExtractionSummary(BaseModel):
    pages_scanned: int = 0
    candidates_found: int = 0
    services_created: int = 0
    duplicates_skipped: int = 0
    failures: int = 0


class PageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    content: str
    metadata: dict[str, Any] | None = Field(None, validation_alias="extra_metadata")
    last_scraped: datetime
    is_active: bool


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    category: str
    price_from: str | None
    price_to: str | None
    price_unit: str | None
    is_helan_service: bool
    source_url: str | None
    metadata: dict[str, Any] | None = Field(None, validation_alias="extra_metadata")
    created_at: datetime


class ScrapingContentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    content: str
    metadata: dict[str, Any] | None = Field(None, validation_alias="extra_metadata")
    scraped_at: datetime
    last_updated: datetime


class ExtractedServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    category: str | None
    price_from: str | None
    price_to: str | None
    price_unit: str | None
    source_url: str | None
    is_helan_service: bool
    extracted_at: datetime
    metadata: dict[str, Any] | None = Field(None, validation_alias="extra_metadata")


class ScrapingStatsResponse(BaseModel):
    total_content: int
    total_services: int
    last_scraped: datetime | None
    pending_mirror_writes: int = 0
    crawl_state: CrawlState = CrawlState.IDLE


class TriggerResponse(BaseModel):
    """Acknowledgement of an on-demand crawl"""

    message: str
    status: str  # started | already_running


class DeactivatePageRequest(BaseModel):
    url: str


class UserProfile(BaseModel):
    is_zf_member: bool | None = Field(None, description="Member of the supplementary insurance")


class CostSimulationRequest(BaseModel):
    service_ids: list[int] = Field(default_factory=list)
    user_profile: UserProfile = Field(default_factory=UserProfile)


class CostLine(BaseModel):
    service_id: int
    name: str
    price: float
    unit: str


class CostSimulationResponse(BaseModel):
    services: list[CostLine]
    total_cost: float
    discount: float
    final_cost: float
    currency: str = "EUR"
