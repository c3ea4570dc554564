"""
Templates Module

This module provides Jinja2 template loading and rendering for prompts,
as well as centralized settings management via settings.yaml.

Layout:
- prompts/: prompt templates (search queries, crawl selection, question
  generation, answer summary, intent classification, request block)
- generators/: per-generator system roles and generation options (YAML)
- questions.yaml: static clarifying question bank per request type
- settings.yaml: centralized configuration for all tunable parameters
"""

from .template_loader import (
    TemplateLoader,
    get_template_loader,
    get_settings,
)

__all__ = [
    "TemplateLoader",
    "get_template_loader",
    "get_settings",
]
