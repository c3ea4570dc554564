"""
Concrete port implementations over LangChain, ddgs and requests.
"""
from .llm import LangChainAIPort
from .search import DuckDuckGoSearchPort
from .crawl import RequestsCrawlPort, html_to_text

__all__ = [
    "LangChainAIPort",
    "DuckDuckGoSearchPort",
    "RequestsCrawlPort",
    "html_to_text",
]
