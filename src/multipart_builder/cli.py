"""Command-line entry point that posts form fields and files as multipart data."""

from __future__ import annotations

import http.client
import logging
import sys
from collections.abc import Sequence
from typing import Optional

import click
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .config_loader import ConfigError, load_config
from .datatypes import AppConfig
from .encoder import MultipartEncoder
from .env_flags import debug_logging_requested
from .errors import MultipartError
from .interfaces import BodySink
from .net import default_timeouts, redact_url_for_logs
from .sinks import HTTPConnectionSink, StreamSink

logger = logging.getLogger("multipart_builder")

_EXIT_FAILURE = 1
_EXIT_USAGE = 2


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose or debug_logging_requested() else logging.WARNING
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


def _split_pair(raw: str, option: str) -> tuple[str, str]:
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME=VALUE, got {raw!r}", param_hint=option)
    return name, value


def _split_file_spec(raw: str) -> tuple[str, str, Optional[str]]:
    """Parse ``NAME=PATH`` or ``NAME=PATH;RENAME``."""

    name, path = _split_pair(raw, "--file")
    path, sep, rename = path.partition(";")
    if not path:
        raise click.BadParameter(f"missing path in {raw!r}", param_hint="--file")
    return name, path, (rename or None) if sep else None


def build_encoder(
    sink: BodySink,
    cfg: AppConfig,
    *,
    fields: Sequence[str] = (),
    files: Sequence[str] = (),
    headers: Sequence[str] = (),
) -> MultipartEncoder:
    """Translate CLI ``NAME=VALUE`` specs into a configured encoder bound to *sink*."""

    encoder = MultipartEncoder(
        sink,
        cfg.encoder.charset,
        chunk_size=cfg.encoder.chunk_size,
        boundary_prefix=cfg.encoder.boundary_prefix,
    )
    for raw in headers:
        encoder.add_header_field(*_split_pair(raw, "--header"))
    for raw in fields:
        encoder.add_form_field(*_split_pair(raw, "--field"))
    for raw in files:
        name, path, rename = _split_file_spec(raw)
        encoder.add_file(name, path, rename)
    return encoder


def _write_to_file(output_path: str, cfg: AppConfig, specs: dict[str, Sequence[str]]) -> None:
    with open(output_path, "wb") as handle:
        sink = StreamSink(handle)
        encoder = build_encoder(sink, cfg, **specs)
        written = encoder.build()
    print(f"[green]Wrote {written} bytes to[/green] {escape(output_path)}")
    print(f"Content-Type: {escape(encoder.content_type or '')}")


def _post(url: str, cfg: AppConfig, specs: dict[str, Sequence[str]]) -> int:
    timeout = default_timeouts(cfg.http.connect_timeout, cfg.http.read_timeout)
    with HTTPConnectionSink(
        url, method=cfg.http.method, headers=cfg.http.headers, timeout=timeout
    ) as sink:
        encoder = build_encoder(sink, cfg, **specs)
        written = encoder.build()
        response = sink.get_response()
        body = response.read()
    logger.info("Sent %d bytes to %s", written, redact_url_for_logs(url))
    colour = "green" if response.status < 400 else "red"
    print(f"[{colour}]{response.status} {escape(response.reason or '')}[/{colour}]")
    if body:
        click.echo(body.decode("utf-8", errors="replace"))
    return 0 if response.status < 400 else _EXIT_FAILURE


@click.command()
@click.argument("url", required=False)
@click.option("--field", "fields", multiple=True, metavar="NAME=VALUE", help="Text field (repeatable).")
@click.option(
    "--file",
    "files",
    multiple=True,
    metavar="NAME=PATH[;RENAME]",
    help="File attachment, optionally sent under another file name (repeatable).",
)
@click.option(
    "--header",
    "headers",
    multiple=True,
    metavar="NAME=VALUE",
    help="Header line written ahead of the first part (repeatable).",
)
@click.option("--config", "config_path", default=None, help="Path to a TOML configuration file.")
@click.option("--output", "output_path", default=None, help="Write the body to a file instead of sending it.")
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
def main(
    url: str | None,
    fields: tuple[str, ...],
    files: tuple[str, ...],
    headers: tuple[str, ...],
    config_path: str | None,
    output_path: str | None,
    verbose: bool,
) -> None:
    """Encode fields and files as multipart/form-data and POST them to URL."""

    _configure_logging(verbose)
    if not url and not output_path:
        raise click.UsageError("Provide a URL or --output PATH.")

    try:
        cfg = load_config(config_path)
    except ConfigError as exc:
        print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_USAGE)

    specs: dict[str, Sequence[str]] = {"fields": fields, "files": files, "headers": headers}
    status = 0
    try:
        if output_path:
            _write_to_file(output_path, cfg, specs)
        elif url:
            status = _post(url, cfg, specs)
    except ValueError as exc:
        print(f"[red]Invalid request:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_USAGE)
    except (MultipartError, OSError, http.client.HTTPException) as exc:
        logger.debug("Upload failed", exc_info=True)
        print(f"[red]Upload failed:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_FAILURE)
    if status:
        sys.exit(status)


if __name__ == "__main__":
    main()
