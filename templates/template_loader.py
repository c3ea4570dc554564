"""
Jinja2 Template Loader for prompt management.

Provides utilities to load and render Jinja2 templates from the templates folder.
Also loads settings.yaml and the YAML data files (question bank, generator roles)
that live next to the prompts.
"""

from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

# Template directory root
TEMPLATE_ROOT = Path(__file__).parent

# Settings cache
_settings_cache: Optional[Dict[str, Any]] = None
_settings_mtime: float = 0


class TemplateLoader:
    """
    Loads and renders Jinja2 templates for prompts.

    Usage:
        loader = TemplateLoader()
        prompt = loader.render_prompt("answer_summary", transcript="...")
    """

    def __init__(self, template_dir: Optional[Path] = None):
        """
        Initialize the template loader.

        Args:
            template_dir: Root directory for templates. Defaults to templates folder.
        """
        self.template_dir = template_dir or TEMPLATE_ROOT
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

        # Parsed YAML data files keyed by relative path
        self._data_cache: Dict[str, Any] = {}

    def render(self, template_path: str, **kwargs) -> str:
        """
        Render a template with the given variables.

        Args:
            template_path: Relative path to template (e.g., "prompts/answer_summary.j2")
            **kwargs: Variables to pass to the template

        Returns:
            Rendered template string
        """
        try:
            template = self.env.get_template(template_path)
        except TemplateNotFound:
            raise FileNotFoundError(f"Template not found: {template_path}")
        return template.render(**kwargs).strip()

    def render_prompt(self, prompt_name: str, **kwargs) -> str:
        """
        Render a prompt template from the prompts folder.

        Args:
            prompt_name: Name of the prompt (e.g., "question_generation", "intent_classification")
            **kwargs: Variables to pass to the template

        Returns:
            Rendered prompt string
        """
        return self.render(f"prompts/{prompt_name}.j2", **kwargs)

    def load_data(self, relative_path: str) -> Any:
        """
        Load and cache a YAML data file below the templates folder.

        Args:
            relative_path: Path relative to the templates root (e.g., "questions.yaml")

        Returns:
            Parsed YAML content

        Raises:
            FileNotFoundError: If the file does not exist
        """
        if relative_path in self._data_cache:
            return self._data_cache[relative_path]

        data_path = self.template_dir / relative_path
        if not data_path.exists():
            raise FileNotFoundError(f"Data file not found: {data_path}")

        with open(data_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        self._data_cache[relative_path] = data
        return data

    def template_exists(self, template_path: str) -> bool:
        """Check if a template or data file exists."""
        return (self.template_dir / template_path).exists()


# Singleton instance
_loader_instance: Optional[TemplateLoader] = None


def get_template_loader() -> TemplateLoader:
    """Get the singleton TemplateLoader instance."""
    global _loader_instance

    if _loader_instance is None:
        _loader_instance = TemplateLoader()

    return _loader_instance


def get_settings(reload: bool = False) -> Dict[str, Any]:
    """
    Load settings from settings.yaml.

    Settings are cached and only reloaded if the file has been modified
    or if reload=True is specified.

    Args:
        reload: Force reload settings from file

    Returns:
        Settings dictionary

    Raises:
        FileNotFoundError: If settings.yaml doesn't exist
    """
    global _settings_cache, _settings_mtime

    settings_path = TEMPLATE_ROOT / "settings.yaml"

    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    current_mtime = settings_path.stat().st_mtime

    if _settings_cache is None or reload or current_mtime > _settings_mtime:
        with open(settings_path, "r", encoding="utf-8") as f:
            _settings_cache = yaml.safe_load(f) or {}
        _settings_mtime = current_mtime

    return _settings_cache
