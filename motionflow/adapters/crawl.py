"""
Crawl port over requests, with a small HTML-to-text extractor.
"""
import asyncio
import re
from html.parser import HTMLParser
from typing import Any, Dict, List

import requests

from motionflow.ports import CrawlPort
from motionflow.utils import get_logger

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

SKIPPED_TAGS = {"script", "style", "noscript", "nav", "footer", "header", "aside", "form", "svg"}
BLOCK_TAGS = {"p", "div", "br", "li", "h1", "h2", "h3", "h4", "h5", "h6", "tr", "section", "article"}


class _TextExtractor(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: List[str] = []
        self.title = ""
        self._skip_depth = 0
        self._in_title = False

    def handle_starttag(self, tag, attrs):
        if tag in SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag == "title":
            self._in_title = True
        elif tag in BLOCK_TAGS:
            self.parts.append("\n")

    def handle_endtag(self, tag):
        if tag in SKIPPED_TAGS and self._skip_depth:
            self._skip_depth -= 1
        elif tag == "title":
            self._in_title = False
        elif tag in BLOCK_TAGS:
            self.parts.append("\n")

    def handle_data(self, data):
        if self._in_title:
            self.title += data
        elif not self._skip_depth:
            self.parts.append(data)


def html_to_text(html: str) -> Dict[str, str]:
    """Visible text and title of an HTML document."""
    parser = _TextExtractor()
    parser.feed(html)
    parser.close()
    lines = (re.sub(r"[ \t\r\f\v]+", " ", line).strip() for line in "".join(parser.parts).split("\n"))
    text = "\n".join(line for line in lines if line)
    return {"title": parser.title.strip(), "content": text}


class RequestsCrawlPort(CrawlPort):
    """Fetches a URL with requests in a worker thread and extracts its text."""

    def _fetch(self, url: str, timeout: float) -> requests.Response:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT, "Accept-Language": "de-DE,de;q=0.9,en;q=0.8"},
            timeout=timeout,
        )
        response.raise_for_status()
        return response

    async def crawl(self, url: str, timeout: float = 5.0, max_content_length: int = 50000) -> Dict[str, Any]:
        try:
            response = await asyncio.to_thread(self._fetch, url, timeout)
        except requests.exceptions.Timeout:
            return {"success": False, "error": f"Timeout after {timeout}s"}
        except requests.exceptions.RequestException as e:
            return {"success": False, "error": str(e)}

        content_type = response.headers.get("Content-Type", "").lower()
        if "html" in content_type:
            extracted = html_to_text(response.text)
        elif content_type.startswith("text/"):
            extracted = {"title": "", "content": response.text}
        else:
            logger.info(f"[RequestsCrawlPort] Unsupported content type for {url}: {content_type}")
            return {"success": False, "error": f"Unsupported content type: {content_type or 'unknown'}"}

        content = extracted["content"][:max_content_length]
        if not content.strip():
            return {"success": False, "error": "No text content"}
        return {
            "success": True,
            "data": {
                "title": extracted["title"],
                "content": content,
                "word_count": len(content.split()),
            },
        }
