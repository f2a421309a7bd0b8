"""Runtime settings for the modification engine."""

import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_STORE_DIR = "./.modifier/sessions"
ENV_PREFIX = "MODIFIER_"


class ModifierSettings(BaseModel):
    """Settings resolved from defaults, environment and CLI flags."""

    model_config = ConfigDict(frozen=False)

    model: str = DEFAULT_MODEL
    llm_provider: Literal["auto", "anthropic", "openai"] = "auto"
    llm_fallback_provider: Optional[Literal["anthropic", "openai"]] = None
    allow_llm_fallback: bool = False
    store_dir: Optional[str] = DEFAULT_STORE_DIR  # None keeps sessions in memory
    records_dir: Optional[str] = None  # project-history records, if any
    session_ttl_seconds: int = Field(default=3600, ge=1)
    mapper_workers: int = Field(default=4, ge=1)
    max_regen_files: int = Field(default=5, ge=1)
    summary_size: int = Field(default=5, ge=1)
    anthropic_api_key: Optional[str] = Field(default=None, repr=False)
    openai_api_key: Optional[str] = Field(default=None, repr=False)

    @classmethod
    def from_env(cls, **overrides) -> "ModifierSettings":
        """Build settings from MODIFIER_* variables, then apply overrides.

        Overrides whose value is None are ignored so unset CLI flags do not
        mask the environment.
        """
        values: dict = {}
        for name in cls.model_fields:
            if name.endswith("_api_key"):
                continue
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values["anthropic_api_key"] = os.getenv("ANTHROPIC_API_KEY") or None
        values["openai_api_key"] = os.getenv("OPENAI_API_KEY") or None
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(values)

    def has_llm_credentials(self) -> bool:
        return bool(self.anthropic_api_key or self.openai_api_key)

    def safe_dump(self) -> dict:
        """Settings without secrets, for display."""
        return self.model_dump(exclude={"anthropic_api_key", "openai_api_key"})
