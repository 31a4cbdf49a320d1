"""tenkvendor CLI — run the notification server and poke at it.

Usage:
    tenkvendor serve                              # Run the API + WebSocket server
    tenkvendor token 64f1c0ffee                   # Dev JWT for a user id
    tenkvendor push-send "Shipped" "On its way"   # Push to every device
    tenkvendor push-send "Shipped" "..." -u 64f1  # Push to one user's devices
    tenkvendor vapid-keys                         # Fresh VAPID key pair
"""

from __future__ import annotations

import json
import os
import sys
from typing import Optional

import click
import httpx

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("TENKVENDOR_API_URL", DEFAULT_API_URL).rstrip("/")


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


@click.group()
@click.version_option(version="0.1.0", prog_name="tenkvendor")
def main():
    """10kVendor real-time notifications."""


@main.command()
@click.option("--host", default=None, help="Bind host (default from settings)")
@click.option("--port", type=int, default=None, help="Bind port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP + WebSocket server with uvicorn."""
    import uvicorn

    from tenkvendor.config import settings

    uvicorn.run(
        "tenkvendor.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.argument("user_id")
@click.option("--minutes", type=int, default=None, help="Lifetime in minutes")
def token(user_id: str, minutes: Optional[int]):
    """Print a signed access token for USER_ID (development only)."""
    from tenkvendor.auth.jwt import create_access_token
    from tenkvendor.config import settings

    if settings.environment != "development":
        click.secho("Refusing to mint tokens outside development", fg="red", err=True)
        sys.exit(1)
    click.echo(create_access_token(user_id, expires_minutes=minutes))


@main.command("push-send")
@click.argument("title")
@click.argument("body")
@click.option("--url", default=None, help="Page to open on click (default /orders.html)")
@click.option("--user-id", "-u", default=None, help="Only this user's devices")
@click.option(
    "--token",
    "auth_token",
    envvar="TENKVENDOR_TOKEN",
    required=True,
    help="Admin bearer token (or set TENKVENDOR_TOKEN)",
)
def push_send(title: str, body: str, url: Optional[str], user_id: Optional[str], auth_token: str):
    """Send a push notification through the running server."""
    payload = {"title": title, "body": body, "url": url, "userId": user_id}
    try:
        r = httpx.post(
            f"{_api_url()}/api/push/send",
            json=payload,
            headers={"Authorization": f"Bearer {auth_token}"},
            timeout=30.0,
        )
    except httpx.HTTPError as e:
        click.secho(f"Request failed: {e}", fg="red", err=True)
        sys.exit(1)

    if r.status_code == 404:
        click.secho("No subscriptions found", fg="yellow")
        sys.exit(2)
    if r.status_code >= 400:
        click.secho(f"Error {r.status_code}: {r.text}", fg="red", err=True)
        sys.exit(1)
    click.echo(_pretty_json(r.json()))


@main.command("vapid-keys")
def vapid_keys():
    """Generate a VAPID key pair for TENKVENDOR_VAPID_* settings."""
    from cryptography.hazmat.primitives import serialization
    from py_vapid import Vapid
    from py_vapid.utils import b64urlencode

    vapid = Vapid()
    vapid.generate_keys()
    public = vapid.public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )
    private = vapid.private_key.private_numbers().private_value.to_bytes(32, "big")

    click.echo(f"TENKVENDOR_VAPID_PUBLIC_KEY={b64urlencode(public)}")
    click.echo(f"TENKVENDOR_VAPID_PRIVATE_KEY={b64urlencode(private)}")


if __name__ == "__main__":
    main()
