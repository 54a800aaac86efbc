"""Rule-based service extraction

Scans normalized page text for known service archetypes. An archetype
matches when any of its keywords occurs as a case-insensitive substring of
the text, including inside longer words. This is a heuristic: false
positives and false negatives are accepted.
"""

import re
from urllib.parse import urlparse

from helan_chat.core.config import settings
from helan_chat.schemas.scraping import ServiceArchetype, ServiceCandidate

PRICE_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:euro|eur|€)", re.IGNORECASE)

PRICE_UNIT_CURRENCY = "EUR"


def default_archetypes() -> list[ServiceArchetype]:
    """Archetypes from settings (SERVICE_ARCHETYPES_JSON or the built-in table)"""
    return [ServiceArchetype.model_validate(item) for item in settings.service_archetypes]


def extract_price(text: str) -> str | None:
    """First "<amount> euro|eur|€" in the text as a dot-decimal string"""
    match = PRICE_RE.search(text or "")
    if match is None:
        return None
    return match.group(1).replace(",", ".")


class ServiceExtractor:
    """Matches page text against the archetype table"""

    def __init__(
        self,
        archetypes: list[ServiceArchetype] | None = None,
        *,
        first_party_domain: str | None = None,
        shop_marker: str | None = None,
    ):
        self.archetypes = archetypes if archetypes is not None else default_archetypes()
        self.first_party_domain = (first_party_domain or settings.SERVICE_FIRST_PARTY_DOMAIN).lower()
        self.shop_marker = (shop_marker or settings.SERVICE_SHOP_MARKER).lower()

    def is_helan_service(self, url: str) -> bool:
        """First-party page: host on the Helan domain and not the shop"""
        host = (urlparse(url).hostname or "").lower()
        return self.first_party_domain in host and self.shop_marker not in host

    def describe(self, name: str, is_helan_service: bool) -> str:
        provider = "Helan" if is_helan_service else "Helan Zorgwinkel"
        return f"{name} beschikbaar via {provider}"

    def extract_services(self, content: str, url: str) -> list[ServiceCandidate]:
        """Candidates for one page, one per matching archetype

        The price (if any) is the first price token anywhere on the page and is
        shared by every candidate of that page.
        """
        text = (content or "").lower()
        if not text:
            return []

        price_from = extract_price(content)
        is_helan = self.is_helan_service(url)

        candidates: list[ServiceCandidate] = []
        for archetype in self.archetypes:
            found = [kw for kw in archetype.keywords if kw.lower() in text]
            if not found:
                continue
            candidates.append(
                ServiceCandidate(
                    name=archetype.name,
                    description=self.describe(archetype.name, is_helan),
                    category=archetype.category,
                    price_from=price_from,
                    price_unit=PRICE_UNIT_CURRENCY if price_from else None,
                    is_helan_service=is_helan,
                    source_url=url,
                    metadata={"extracted_from": url, "found_keywords": found},
                )
            )
        return candidates
