"""Command-line entry point.

    k2think chat                  interactive conversation, streamed
    k2think ask <template> <text> run a structured method template
    k2think cookies convert       Cookie.json -> cookies.txt
    k2think cookies show          masked preview of the cached cookies
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from k2think import __version__
from k2think.auth.cookies import convert_cookie_file, load_cookie_cache, mask_cookies, resolve_credentials
from k2think.config import Settings
from k2think.dialog.session import ChatHandle, DialogSession
from k2think.errors import K2ThinkError, MethodUnavailableError
from k2think.methods.builder import MethodBuilder
from k2think.methods.templates import TEMPLATES


class _StreamEcho:
    """Prints only the part of each answer snapshot not yet shown."""

    def __init__(self) -> None:
        self.shown = ""

    def __call__(self, answer: str) -> None:
        if answer.startswith(self.shown):
            click.echo(answer[len(self.shown):], nl=False)
        else:
            click.echo("\n" + answer, nl=False)
        self.shown = answer


def _fail(message: str) -> None:
    click.echo(message, err=True)
    sys.exit(1)


async def _chat(settings: Settings, cookies: str) -> None:
    async with DialogSession(settings, cookies=cookies) as session:
        handle: ChatHandle | None = None
        while True:
            try:
                text = click.prompt(">", default="", show_default=False).strip()
            except click.Abort:
                break
            if not text or text in {"/quit", "/exit"}:
                break
            echo = _StreamEcho()
            if handle is None:
                handle = await session.start_conversation(text)
                await session.continue_conversation(handle, on_update=echo)
            else:
                await session.continue_conversation(handle, text, on_update=echo)
            click.echo()


async def _ask(settings: Settings, template: str, value, instructions: str | None):
    async with MethodBuilder(settings) as builder:
        if not builder.is_enabled:
            raise MethodUnavailableError(builder.disabled_reason)
        method = builder.create_from_template(template)
        return await method.execute(value, instructions=instructions)


@click.group()
@click.version_option(version=__version__, prog_name="k2think")
@click.pass_context
def cli(ctx: click.Context):
    """k2think -- K2Think dialog client."""
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    ctx.obj = settings


@cli.command()
@click.pass_obj
def chat(settings: Settings):
    """Interactive streamed conversation. Empty line or /quit exits."""
    resolution = resolve_credentials(settings)
    if not resolution.found:
        _fail("No cookies found. Run `k2think cookies convert` or set K2THINK_COOKIES.")
    try:
        asyncio.run(_chat(settings, resolution.cookies))
    except K2ThinkError as e:
        _fail(f"Error: {e}")


@cli.command()
@click.argument("template", type=click.Choice(sorted(TEMPLATES)))
@click.argument("text")
@click.option("--instructions", default=None, help="Extra instructions appended to the prompt.")
@click.pass_obj
def ask(settings: Settings, template: str, text: str, instructions: str | None):
    """Run a structured method template on TEXT (plain text or a JSON value)."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        value = text
    try:
        result = asyncio.run(_ask(settings, template, value, instructions))
    except K2ThinkError as e:
        _fail(f"Error: {e}")
    click.echo(json.dumps(result, ensure_ascii=False, indent=2))


@cli.group()
def cookies():
    """Manage cookie files."""


@cookies.command()
@click.pass_obj
def convert(settings: Settings):
    """Convert the name=value cookie export into the cache file."""
    try:
        convert_cookie_file(settings.cookie_source_file, settings.cookie_cache_file)
    except (OSError, ValueError) as e:
        _fail(f"Conversion failed: {e}")
    click.echo(f"Cookies written to {settings.cookie_cache_file}")


@cookies.command()
@click.pass_obj
def show(settings: Settings):
    """Masked preview of the cached cookies."""
    cached = load_cookie_cache(settings.cookie_cache_file)
    if not cached:
        _fail(f"{settings.cookie_cache_file} not found. Run `k2think cookies convert` first.")
    click.echo(mask_cookies(cached))
    has_token = any(p.strip().startswith("token=") for p in cached.split(";"))
    click.echo("Auth token found" if has_token else "Auth token NOT found")


if __name__ == "__main__":
    cli()
