"""External search-results providers."""

from rankwatch.integrations.scrapingdog import ScrapingdogClient

__all__ = ["ScrapingdogClient"]
