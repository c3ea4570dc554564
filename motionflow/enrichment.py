"""
Default context enrichment: crawls URLs the user pasted into topic or details.
"""
import asyncio
import re
from typing import Any, Dict, List

from motionflow.config import CrawlConfig
from motionflow.ports import CrawlPort, Enricher
from motionflow.utils import get_logger
from motionflow.utils.exceptions import EnrichmentDegradation

logger = get_logger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s<>\"')\]]+")


def extract_urls(*texts: str) -> List[str]:
    """Unique http(s) URLs in order of appearance."""
    urls: List[str] = []
    for text in texts:
        for match in URL_PATTERN.findall(text or ""):
            url = match.rstrip(".,;:")
            if url not in urls:
                urls.append(url)
    return urls


class UrlEnricher(Enricher):
    """
    Fetches user-supplied URLs and returns them as documents.

    Failed URLs are skipped; the enrichment itself never raises.
    """

    def __init__(self, crawl_port: CrawlPort, config: CrawlConfig, max_urls: int = 3):
        self.crawl_port = crawl_port
        self.config = config
        self.max_urls = max_urls

    async def enrich(self, request: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        urls = extract_urls(request.get("thema", ""), request.get("details", ""))[:self.max_urls]
        if not urls:
            return {"documents": [], "knowledge": [], "urls_crawled": []}

        logger.info(f"[UrlEnricher] Crawling {len(urls)} user URLs for {user_id}")
        responses = await asyncio.gather(
            *(self._crawl(url) for url in urls), return_exceptions=True
        )

        documents = []
        for url, response in zip(urls, responses):
            if isinstance(response, EnrichmentDegradation):
                logger.warning(f"[UrlEnricher] Skipping {url}: {response.message}")
                continue
            if isinstance(response, Exception):
                logger.warning(f"[UrlEnricher] {url} failed: {response}")
                continue
            documents.append(response)

        return {
            "documents": documents,
            "knowledge": [],
            "urls_crawled": [doc["url"] for doc in documents],
        }

    async def _crawl(self, url: str) -> Dict[str, Any]:
        """
        Fetch one URL as a document.

        Raises:
            EnrichmentDegradation: If the page timed out or returned no content
        """
        try:
            response = await asyncio.wait_for(
                self.crawl_port.crawl(
                    url,
                    timeout=self.config.timeout_seconds,
                    max_content_length=self.config.max_content_length,
                ),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise EnrichmentDegradation(f"Timed out after {self.config.timeout_seconds}s", {"url": url})

        content = (response.get("data") or {}).get("content") if response.get("success") else None
        if not content:
            raise EnrichmentDegradation(f"No content: {response.get('error')}", {"url": url})
        return {"title": url, "url": url, "content": content}
