"""Scheduled tasks

- ScrapeWebsitesTask: crawl + service extraction every CRAWLER_INTERVAL_HOURS
"""

from helan_chat.scheduler.tasks.scrape_websites import ScrapeWebsitesTask

__all__ = [
    "ScrapeWebsitesTask",
]
