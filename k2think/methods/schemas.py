"""Pydantic DTOs for structured methods."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MethodConfig(BaseModel):
    """Prompt template + required-field schema bound to one structured method."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str = ""
    system_prompt: str = ""
    json_schema: dict[str, Any] | None = None
    required_fields: list[str] = Field(default_factory=list)
    input_validator: Callable[[Any], Any] | None = None
    examples: list[Any] = Field(default_factory=list)

    @model_validator(mode="after")
    def _required_from_schema(self) -> MethodConfig:
        if not self.required_fields and self.json_schema:
            self.required_fields = list(self.json_schema.get("required", []))
        return self


class BuilderStatus(StrEnum):
    ENABLED = "enabled"
    DISABLED_BY_OPTION = "disabled_by_option"
    NO_CREDENTIALS = "no_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"
    TRANSPORT_FAILURE = "transport_failure"
    NOT_INITIALIZED = "not_initialized"


STATUS_MESSAGES: dict[BuilderStatus, str] = {
    BuilderStatus.ENABLED: "AI methods are available.",
    BuilderStatus.DISABLED_BY_OPTION: "AI methods are disabled (skip_cookies=True).",
    BuilderStatus.NO_CREDENTIALS: (
        "No cookies found. Export browser cookies to Cookie.json and run "
        "`k2think cookies convert`, or set K2THINK_COOKIES."
    ),
    BuilderStatus.INVALID_CREDENTIALS: (
        "Cookies were found but are unusable (no name=value pairs, control "
        "characters, or rejected by the server). Re-export them from the browser."
    ),
    BuilderStatus.TRANSPORT_FAILURE: (
        "Cookies look fine but the service could not be reached. Check the network "
        "and K2THINK_BASE_URL."
    ),
    BuilderStatus.NOT_INITIALIZED: "Builder not initialized -- await init() first.",
}
