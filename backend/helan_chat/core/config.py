"""Application settings"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict

from helan_chat.core.paths import get_project_root

# Entry pages crawled on every run (one level of links is followed from each)
DEFAULT_PAGE_URLS: list[str] = [
    "https://helan.be",
    "https://www.helan.be/nl/",
    "https://www.helan.be/nl/ons-aanbod/",
    "https://www.helan.be/nl/ons-aanbod/zorg-en-ondersteuning/",
    "https://www.helan.be/nl/ons-aanbod/thuiszorg/",
    "https://www.helan.be/nl/ons-aanbod/kraamzorg/",
    "https://www.helan.be/nl/ons-aanbod/kinesitherapie/",
    "https://helanzorgwinkel.be",
    "https://www.helanzorgwinkel.be/",
    "https://www.helanzorgwinkel.be/categorien/",
    "https://www.helanzorgwinkel.be/zorg/",
    "https://www.helanzorgwinkel.be/hulpmiddelen/",
]

DEFAULT_SITEMAP_URLS: list[str] = [
    "https://www.helan.be/sitemap.xml",
    "https://www.helanzorgwinkel.be/sitemap.xml",
]

DEFAULT_SERVICE_ARCHETYPES: list[dict[str, Any]] = [
    {
        "name": "Gipshoes",
        "category": "Orthopedische hulpmiddelen",
        "keywords": ["gipshoes", "gips schoen", "gipsschoen"],
    },
    {
        "name": "Thuiszorg",
        "category": "Thuiszorg",
        "keywords": ["thuiszorg", "verpleging thuis", "zorg aan huis"],
    },
    {
        "name": "Kinesitherapie",
        "category": "Therapie",
        "keywords": ["kinesitherapie", "fysiotherapie", "revalidatie"],
    },
    {
        "name": "Rollator",
        "category": "Mobiliteitshulpmiddelen",
        "keywords": ["rollator", "loophulp", "wandelframe"],
    },
    {
        "name": "Krukken",
        "category": "Mobiliteitshulpmiddelen",
        "keywords": ["krukken", "loopstokken", "wandelstok"],
    },
    {
        "name": "Incontinentiemateriaal",
        "category": "Persoonlijke verzorging",
        "keywords": ["incontinentie", "luiers", "absorberend"],
    },
]


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ========== ENV_JSON directory ==========
    # Large JSON values can live in <ENV_JSON_DIR>/<VAR_NAME>.json instead of .env
    # Priority: environment variable > file. Empty disables file loading.
    ENV_JSON_DIR: str = ""  # e.g. .env.json

    # Databases
    DATABASE_PATH: str = "./data/app.db"
    SCRAPING_DATABASE_PATH: str = "./data/scraping.db"  # dedicated scraping store

    # Service
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:5173"

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_MODE: str = "detailed"  # simple, detailed, json
    LOG_FILE: str = "./logs/app.log"
    LOG_FILE_ROTATION: str = "10 MB"
    LOG_FILE_RETENTION: str = "7 days"

    # ========== Crawler ==========
    CRAWLER_ENABLED: bool = True
    CRAWLER_RUN_ON_START: bool = True  # crawl once when the scheduler starts
    CRAWLER_INTERVAL_HOURS: float = 24.0

    # HTTP client
    CRAWLER_USER_AGENT: str = "Mozilla/5.0 (compatible; HelanBot/1.0)"
    CRAWLER_ACCEPT_LANGUAGE: str = "nl-BE,nl;q=0.9,en;q=0.8"
    CRAWLER_TIMEOUT_SECONDS: float = 30.0

    # Politeness and bounds
    CRAWLER_REQUEST_DELAY: float = 0.1  # seconds between top-level URLs
    CRAWLER_SUBPAGE_DELAY: float = 0.05  # seconds between followed links
    CRAWLER_FOLLOW_LINKS: bool = True
    CRAWLER_MAX_FOLLOWED_LINKS: int = 200  # per run
    CRAWLER_STALENESS_HOURS: float = 24.0
    CRAWLER_PAGE_CONTENT_LIMIT: int = 5000
    CRAWLER_SUBPAGE_CONTENT_LIMIT: int = 3000
    CRAWLER_ALLOWED_DOMAINS: str = "helan.be,helanzorgwinkel.be"

    # Seeds, JSON arrays of URLs. Empty means built-in defaults.
    CRAWLER_SITEMAP_URLS_JSON: str = ""
    CRAWLER_PAGE_URLS_JSON: str = ""

    # ========== Service extraction ==========
    # JSON array of {"name", "category", "keywords"}. Empty means built-in table.
    SERVICE_ARCHETYPES_JSON: str = ""
    SERVICE_FIRST_PARTY_DOMAIN: str = "helan.be"
    SERVICE_SHOP_MARKER: str = "zorgwinkel"

    @property
    def database_url(self) -> str:
        """Primary SQLite database URL"""
        return f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    @property
    def scraping_database_url(self) -> str:
        """Dedicated scraping SQLite database URL"""
        return f"sqlite+aiosqlite:///{self.SCRAPING_DATABASE_PATH}"

    @property
    def cors_origins_list(self) -> list[str]:
        """CORS origins, comma separated or a JSON array from ENV_JSON_DIR"""
        parsed = self._load_json_from_env_or_file("CORS_ORIGINS", self.CORS_ORIGINS)
        if isinstance(parsed, list):
            return [str(origin).strip() for origin in parsed]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def crawler_allowed_domains(self) -> list[str]:
        return [d.strip().lower() for d in self.CRAWLER_ALLOWED_DOMAINS.split(",") if d.strip()]

    @property
    def crawler_sitemap_urls(self) -> list[str]:
        """Sitemap seeds, from CRAWLER_SITEMAP_URLS_JSON or the defaults"""
        return self._load_url_list("CRAWLER_SITEMAP_URLS_JSON", self.CRAWLER_SITEMAP_URLS_JSON, DEFAULT_SITEMAP_URLS)

    @property
    def crawler_page_urls(self) -> list[str]:
        """Page seeds, from CRAWLER_PAGE_URLS_JSON or the defaults"""
        return self._load_url_list("CRAWLER_PAGE_URLS_JSON", self.CRAWLER_PAGE_URLS_JSON, DEFAULT_PAGE_URLS)

    @property
    def service_archetypes(self) -> list[dict[str, Any]]:
        """
        Service archetype table

        Loaded from SERVICE_ARCHETYPES_JSON (env or ENV_JSON_DIR file). Entries
        without a name, a category and at least one keyword are dropped. Falls
        back to the built-in table when nothing valid is configured.
        """
        parsed = self._load_json_from_env_or_file("SERVICE_ARCHETYPES_JSON", self.SERVICE_ARCHETYPES_JSON)
        if not isinstance(parsed, list):
            return [dict(item) for item in DEFAULT_SERVICE_ARCHETYPES]
        out: list[dict[str, Any]] = []
        for item in parsed:
            if not isinstance(item, dict):
                continue
            keywords = item.get("keywords")
            if not item.get("name") or not item.get("category") or not isinstance(keywords, list) or not keywords:
                continue
            out.append(
                {
                    "name": str(item["name"]),
                    "category": str(item["category"]),
                    "keywords": [str(k) for k in keywords],
                }
            )
        return out or [dict(item) for item in DEFAULT_SERVICE_ARCHETYPES]

    def ensure_data_dir(self) -> None:
        """Create the database directories"""
        Path(self.DATABASE_PATH).parent.mkdir(parents=True, exist_ok=True)
        Path(self.SCRAPING_DATABASE_PATH).parent.mkdir(parents=True, exist_ok=True)

    def _load_url_list(self, var_name: str, env_value: str, default: list[str]) -> list[str]:
        parsed = self._load_json_from_env_or_file(var_name, env_value)
        if not isinstance(parsed, list):
            return list(default)
        return [str(url).strip() for url in parsed if isinstance(url, str) and url.strip()]

    def _load_json_from_env_or_file(self, var_name: str, env_value: str) -> Any:
        """
        Load a JSON value from the environment or from ENV_JSON_DIR

        Order:
        1. the environment value (env_value), when it parses as JSON
        2. ENV_JSON_DIR/<var_name>.json
        3. None

        Args:
            var_name: environment variable name (e.g. "SERVICE_ARCHETYPES_JSON")
            env_value: value read from the environment / .env

        Returns:
            Parsed JSON (dict/list/...) or None
        """
        raw = (env_value or "").strip()
        if raw:
            try:
                return json.loads(raw)
            except json.JSONDecodeError:
                pass

        if not self.ENV_JSON_DIR:
            return None

        env_dir = Path(self.ENV_JSON_DIR)
        if not env_dir.is_absolute():
            env_dir = (get_project_root() / env_dir).resolve()
        json_file = env_dir / f"{var_name}.json"
        if not json_file.exists():
            return None

        try:
            content = json_file.read_text(encoding="utf-8")
            return json.loads(_strip_line_comments(content))
        except (OSError, json.JSONDecodeError):
            return None


def _strip_line_comments(text: str) -> str:
    """Remove // line comments outside of JSON strings"""
    cleaned: list[str] = []
    in_string = False
    escape = False
    i = 0
    while i < len(text):
        ch = text[i]
        if escape:
            cleaned.append(ch)
            escape = False
        elif ch == "\\":
            cleaned.append(ch)
            escape = in_string
        elif ch == '"':
            in_string = not in_string
            cleaned.append(ch)
        elif not in_string and text.startswith("//", i):
            newline = text.find("\n", i)
            if newline == -1:
                break
            i = newline
            continue
        else:
            cleaned.append(ch)
        i += 1
    return "".join(cleaned)


@lru_cache
def get_settings() -> Settings:
    """Settings singleton"""
    return Settings()


settings = get_settings()
