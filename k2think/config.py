"""Settings via pydantic-settings with K2THINK_ env prefix.

The cookie string uses validation_alias so the same K2THINK_COOKIES variable
read by the shell helpers drives the Python client.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="K2THINK_", env_file=".env", extra="ignore")

    # Credentials: raw (unencoded) cookie string
    cookies: str = Field("", validation_alias="K2THINK_COOKIES")
    cookie_source_file: str = "Cookie.json"
    cookie_cache_file: str = "cookies.txt"

    # Remote service
    base_url: str = "https://www.k2think.ai"
    model: str = "MBZUAI-IFM/K2-Think"
    user_agent: str = DEFAULT_USER_AGENT
    timeout_connect: float = 10.0  # seconds
    timeout_read: float = 120.0  # seconds

    # Template variables sent with every completion request
    user_name: str = "User"
    user_location: str = "Unknown"
    timezone: str = "Europe/Moscow"
    language: str = "en-US"

    # Remote state is the source of truth; see DESIGN.md
    append_assistant_reply: bool = False

    log_level: str = "info"

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @property
    def host(self) -> str:
        return self.base_url.split("://", 1)[1].split("/", 1)[0]
