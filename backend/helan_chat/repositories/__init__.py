"""Data access layer"""

from helan_chat.repositories.content import (
    MirrorOutboxRepository,
    ScrapedContentRepository,
    ServiceRepository,
)
from helan_chat.repositories.scraping import (
    ExtractedServiceRepository,
    ScrapingContentRepository,
)

__all__ = [
    "ScrapedContentRepository",
    "ServiceRepository",
    "MirrorOutboxRepository",
    "ScrapingContentRepository",
    "ExtractedServiceRepository",
]
