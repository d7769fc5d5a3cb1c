"""Structured method facade.

A StructuredMethod pairs a prompt template and a required-field list with
the DialogSession + extract_json pipeline. MethodBuilder owns the session
and degrades to a disabled state instead of failing when credentials are
missing or unusable; callers check is_enabled before execute().
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from k2think.auth.cookies import is_plausible_cookie_string, resolve_credentials
from k2think.config import Settings
from k2think.dialog.session import DialogSession
from k2think.errors import (
    CredentialError,
    InvalidInputError,
    MethodUnavailableError,
    TemplateNotFoundError,
    TransportError,
)
from k2think.methods.extractor import extract_json
from k2think.methods.schemas import STATUS_MESSAGES, BuilderStatus, MethodConfig
from k2think.methods.templates import TEMPLATES

logger = logging.getLogger(__name__)

STRICT_JSON_REMINDER = "IMPORTANT: the answer must be valid JSON with no extra text."


class StructuredMethod:
    """One callable operation: input -> prompt -> answer -> parsed JSON."""

    def __init__(self, config: MethodConfig, builder: MethodBuilder) -> None:
        self.config = config
        self._builder = builder

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def description(self) -> str:
        return self.config.description

    def validate_input(self, value: Any) -> bool:
        if self.config.input_validator is None:
            return True
        return bool(self.config.input_validator(value))

    def build_prompt(self, value: Any, instructions: str | None = None) -> str:
        """System instruction + inlined schema + serialized input."""
        parts = [self.config.system_prompt]

        if self.config.json_schema:
            schema = json.dumps(self.config.json_schema, ensure_ascii=False, indent=2)
            parts.append(f"Answer STRICTLY in the following JSON format:\n```json\n{schema}\n```")
        else:
            parts.append("Answer in JSON format.")

        if isinstance(value, (dict, list)):
            parts.append("Input data:\n" + json.dumps(value, ensure_ascii=False, indent=2))
        else:
            parts.append(f"Input data: {value}")

        if instructions:
            parts.append(f"Additional instructions: {instructions}")

        parts.append(STRICT_JSON_REMINDER)
        return "\n\n".join(parts)

    async def execute(self, value: Any, instructions: str | None = None) -> Any:
        """Run the method. Returns parsed JSON or an extraction error dict.

        Raises MethodUnavailableError when the builder is disabled,
        InvalidInputError when the validator rejects the input, and lets
        TransportError from the session propagate.
        """
        session = self._builder.require_session()
        if not self.validate_input(value):
            raise InvalidInputError(f"Invalid input for method {self.name}")

        prompt = self.build_prompt(value, instructions)
        # Methods share one session; each call gets its own chat, one at a time
        async with self._builder.session_lock:
            handle = await session.start_conversation(prompt)
            turn = await session.continue_conversation(handle)
        return extract_json(turn.response_text, self.config.required_fields or None)


class MethodBuilder:
    """Creates structured methods and manages the shared dialog session."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        skip_cookies: bool = False,
        session: DialogSession | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._skip_cookies = skip_cookies
        self._session = session
        self._http_transport = http_transport
        self._status = BuilderStatus.NOT_INITIALIZED
        self._lock = asyncio.Lock()

    @property
    def status(self) -> BuilderStatus:
        return self._status

    @property
    def is_enabled(self) -> bool:
        return self._status is BuilderStatus.ENABLED

    @property
    def disabled_reason(self) -> str | None:
        if self.is_enabled:
            return None
        return STATUS_MESSAGES[self._status]

    @property
    def session(self) -> DialogSession | None:
        return self._session

    @property
    def session_lock(self) -> asyncio.Lock:
        return self._lock

    async def init(self, verify: bool = False) -> bool:
        """Prepare the dialog session. Never raises on credential problems.

        With verify=True a chat-list request checks that the cookies are
        accepted, separating invalid credentials from transport failures.
        Always returns True; inspect status / is_enabled afterwards.
        """
        self._status = await self._prepare(verify)
        if self.is_enabled:
            logger.info("Method builder ready (AI methods enabled)")
        else:
            logger.warning("AI methods disabled: %s", STATUS_MESSAGES[self._status])
        return True

    async def _prepare(self, verify: bool) -> BuilderStatus:
        if self._skip_cookies:
            return BuilderStatus.DISABLED_BY_OPTION

        if self._session is None:
            resolution = resolve_credentials(self._settings)
            if not resolution.found:
                return BuilderStatus.NO_CREDENTIALS
            if not is_plausible_cookie_string(resolution.cookies):
                return BuilderStatus.INVALID_CREDENTIALS
            logger.debug("Using cookies from %s", resolution.origin)
            try:
                self._session = DialogSession(
                    self._settings,
                    cookies=resolution.cookies,
                    http_transport=self._http_transport,
                )
            except CredentialError:
                return BuilderStatus.INVALID_CREDENTIALS

        if not self._session.has_credentials:
            return BuilderStatus.NO_CREDENTIALS

        try:
            await self._session.start()
        except CredentialError:
            await self._discard_session()
            return BuilderStatus.INVALID_CREDENTIALS

        if verify:
            try:
                await self._session.list_chats(1)
            except TransportError as e:
                await self._discard_session()
                if e.status_code in (401, 403):
                    return BuilderStatus.INVALID_CREDENTIALS
                return BuilderStatus.TRANSPORT_FAILURE

        return BuilderStatus.ENABLED

    async def _discard_session(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def require_session(self) -> DialogSession:
        if not self.is_enabled or self._session is None:
            raise MethodUnavailableError(
                f"AI methods are unavailable: {STATUS_MESSAGES[self._status]}"
            )
        return self._session

    async def close(self) -> None:
        await self._discard_session()

    async def __aenter__(self) -> MethodBuilder:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Method factories
    # ------------------------------------------------------------------

    def create_method(self, config: MethodConfig | None = None, **fields: Any) -> StructuredMethod:
        if config is None:
            config = MethodConfig(**fields)
        elif fields:
            config = config.model_copy(update=fields)
        return StructuredMethod(config, self)

    @staticmethod
    def templates() -> dict[str, dict[str, Any]]:
        return {name: dict(template) for name, template in TEMPLATES.items()}

    def create_from_template(self, template_name: str, **overrides: Any) -> StructuredMethod:
        template = TEMPLATES.get(template_name)
        if template is None:
            raise TemplateNotFoundError(f'Template "{template_name}" not found')
        return self.create_method(MethodConfig(**{"name": template_name, **template, **overrides}))


async def create(settings: Settings | None = None, **kwargs: Any) -> MethodBuilder:
    """Build and initialize a MethodBuilder in one call."""
    builder = MethodBuilder(settings, **kwargs)
    await builder.init()
    return builder
