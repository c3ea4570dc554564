"""
Generator role configuration loaded from templates/generators/*.yaml.
"""
from typing import Any, Dict

from templates import get_template_loader
from motionflow.utils import get_logger

logger = get_logger(__name__)

DEFAULT_SYSTEM_ROLE = "Du bist ein Experte bei Bündnis 90/Die Grünen."
FALLBACK_GENERATOR = "universal"


def load_generator_config(generator_type: str) -> Dict[str, Any]:
    """Config for ``generator_type``; unknown generators use the universal config."""
    loader = get_template_loader()
    path = f"generators/{generator_type}.yaml"
    if not loader.template_exists(path):
        logger.warning(f"No generator config for '{generator_type}', using '{FALLBACK_GENERATOR}'")
        path = f"generators/{FALLBACK_GENERATOR}.yaml"
    return loader.load_data(path)


def build_system_role(config: Dict[str, Any], request_type: str) -> str:
    """Base role, then the request-type extension (or ``default``), then the appendix."""
    role = config.get("system_role") or DEFAULT_SYSTEM_ROLE
    extensions = config.get("system_role_extensions") or {}
    extension = extensions.get(request_type) or extensions.get("default")
    if extension:
        role += " " + extension
    if config.get("system_role_appendix"):
        role += " " + config["system_role_appendix"]
    return role


def generation_options(config: Dict[str, Any], default_max_tokens: int, default_temperature: float) -> Dict[str, Any]:
    options = config.get("options") or {}
    return {
        "max_tokens": options.get("max_tokens") or default_max_tokens,
        "temperature": options.get("temperature", default_temperature),
    }
