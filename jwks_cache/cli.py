import json
import logging
import os
import sys
from datetime import timedelta

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .client import JwksClient
from .errors import JwksClientError, KeyNotFound, TokenDecodeError
from .source import DEFAULT_CONNECT_TIMEOUT, DEFAULT_TIMEOUT, WebSource

console = Console()
err_console = Console(stderr=True)


# =============================
# Helper functions
# =============================

def load_token_from_file(path: str):
    # raw tokens are longer than most filesystems allow for a name
    if '\n' in path or len(path) > 4096 or not os.path.isfile(path):
        raise FileNotFoundError(path)
    with open(path, 'r') as f:
        return f.read().strip()


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _build_client(url: str, ttl: float, connect_timeout: float, timeout: float) -> JwksClient:
    try:
        source = WebSource.builder().connect_timeout(connect_timeout).timeout(timeout).build(url)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--url")
    return JwksClient.builder().time_to_live(timedelta(seconds=ttl)).build(source)


def _print_key(key):
    data = key.to_dict()
    t = Table(show_header=True, header_style="bold magenta")
    t.add_column("Member")
    t.add_column("Value", overflow="fold")
    for k, v in data.items():
        t.add_row(k, "\n".join(v) if isinstance(v, list) else str(v))
    console.print(Panel(t, title=f"Key {key.key_id}", expand=False))


def _print_claims(claims: dict):
    if not claims:
        console.print(Panel("No claims in token.", title="Claims", expand=False))
        return
    t = Table(show_header=True, header_style="bold magenta")
    t.add_column("Claim")
    t.add_column("Value")
    for k, v in claims.items():
        val = json.dumps(v, indent=2) if isinstance(v, (dict, list)) else str(v)
        t.add_row(k, val)
    console.print(Panel(t, title="Claims", expand=False))


def _fail(e: JwksClientError):
    """Print a client error and exit: 1 for an unknown kid, 2 otherwise."""
    lines = [f"[bold]{type(e).__name__}:[/bold] {e}"]
    if e.cause is not None:
        lines.append(f"[dim]caused by {type(e.cause).__name__}: {e.cause}[/dim]")
    if isinstance(e, TokenDecodeError) and e.is_expired_signature:
        lines.append("Token is expired.")
    err_console.print(Panel("\n".join(lines), title="Error", style="red", expand=False))
    sys.exit(1 if isinstance(e, KeyNotFound) else 2)


# =============================
# CLI definitions
# =============================

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def _source_options(func):
    """Decorator to add JWKS endpoint and cache options"""
    func = click.option("--url", envvar="JWKS_URL", required=True,
                        help="Absolute URL of the JWKS endpoint (env: JWKS_URL).")(func)
    func = click.option("--ttl", type=float, envvar="JWKS_TTL_SECONDS",
                        default=timedelta(hours=24).total_seconds(), show_default=True,
                        help="Key set time-to-live in seconds.")(func)
    func = click.option("--connect-timeout", type=float, envvar="JWKS_CONNECT_TIMEOUT",
                        default=DEFAULT_CONNECT_TIMEOUT, show_default=True,
                        help="Connect timeout in seconds.")(func)
    func = click.option("--timeout", type=float, envvar="JWKS_TIMEOUT",
                        default=DEFAULT_TIMEOUT, show_default=True,
                        help="Read timeout in seconds.")(func)
    func = click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables.")(func)
    return func


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="jwks-cache", prog_name="jwks-cache")
@click.option("-v", "--verbose", is_flag=True, help="Log cache and fetch activity.")
def main(verbose):
    """
    [bold cyan]jwks-cache[/bold cyan]: fetch keys from a JWKS endpoint and verify tokens.

    Examples:

      List the keys: jwks-cache keys --url https://tenant.example.com/.well-known/jwks.json

      Show one key: jwks-cache get go14h7EBWUvPRncjniI_2 --url ...

      Verify a token: jwks-cache decode token.txt --url ... --audience my-api
    """
    _configure_logging(verbose)


# -----------------------------
# keys command
# -----------------------------
@main.command(help="List the keys published at a JWKS endpoint.")
@_source_options
def keys(url, ttl, connect_timeout, timeout, as_json):
    client = _build_client(url, ttl, connect_timeout, timeout)
    try:
        key_set = client.keys()
    except JwksClientError as e:
        _fail(e)

    if as_json:
        console.print_json(data=key_set.to_dict())
        return

    t = Table(show_header=True, header_style="bold magenta")
    t.add_column("kid")
    t.add_column("kty")
    t.add_column("alg")
    t.add_column("use")
    for key in key_set:
        t.add_row(key.key_id, key.key_type, key.algorithm or "-", key.use or "-")
    console.print(Panel(t, title=f"{len(key_set)} key(s)", expand=False))


# -----------------------------
# get command
# -----------------------------
@main.command(help="Show the key with the given key id.")
@click.argument("kid", required=True)
@_source_options
def get(kid, url, ttl, connect_timeout, timeout, as_json):
    client = _build_client(url, ttl, connect_timeout, timeout)
    try:
        key = client.get(kid)
    except JwksClientError as e:
        _fail(e)

    if as_json:
        console.print_json(data=key.to_dict())
    else:
        _print_key(key)


# -----------------------------
# decode command
# -----------------------------
@main.command(help="Verify a JWT against the JWKS endpoint and print its claims.")
@click.argument("token", required=True)
@click.option("--audience", "-a", multiple=True,
              help="Accepted audience; repeat for several. Omit to skip audience checks.")
@_source_options
def decode(token, audience, url, ttl, connect_timeout, timeout, as_json):
    """
    TOKEN can be either:
      • A filename (e.g. token.txt)
      • A raw JWT string
    """
    try:
        tok = load_token_from_file(token)
    except FileNotFoundError:
        tok = token

    client = _build_client(url, ttl, connect_timeout, timeout)
    try:
        claims = client.decode(tok, audience)
    except JwksClientError as e:
        _fail(e)

    if as_json:
        console.print_json(data=claims)
    else:
        _print_claims(claims)


if __name__ == "__main__":
    main()
