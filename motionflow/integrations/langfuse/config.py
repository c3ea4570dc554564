"""
LangFuse settings, read from the environment (and .env) on every call.

    LANGFUSE_ENABLED     "true" to trace LLM calls
    LANGFUSE_PUBLIC_KEY  project public key
    LANGFUSE_SECRET_KEY  project secret key
    LANGFUSE_HOST        defaults to LangFuse Cloud
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_HOST = "https://cloud.langfuse.com"


@dataclass(frozen=True)
class LangfuseSettings:
    public_key: str = ""
    secret_key: str = ""
    host: str = DEFAULT_HOST
    enabled: bool = False

    @property
    def is_complete(self) -> bool:
        """Enabled and both keys present."""
        return bool(self.enabled and self.public_key and self.secret_key)


def load_langfuse_settings() -> LangfuseSettings:
    return LangfuseSettings(
        public_key=os.getenv("LANGFUSE_PUBLIC_KEY", ""),
        secret_key=os.getenv("LANGFUSE_SECRET_KEY", ""),
        host=os.getenv("LANGFUSE_HOST") or DEFAULT_HOST,
        enabled=os.getenv("LANGFUSE_ENABLED", "false").strip().lower() == "true",
    )


def is_configured() -> bool:
    return load_langfuse_settings().is_complete
