"""ORM models"""

from helan_chat.models.base import Base
from helan_chat.models.content import MirrorOutbox, ScrapedContent, Service
from helan_chat.models.scraping import ExtractedService, ScrapingBase, ScrapingContent

__all__ = [
    "Base",
    "ScrapedContent",
    "Service",
    "MirrorOutbox",
    "ScrapingBase",
    "ScrapingContent",
    "ExtractedService",
]
