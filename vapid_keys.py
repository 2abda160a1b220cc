"""
VAPID key generator for web push notifications.

Registered as a Flask CLI command:
    flask --app app generate-vapid-keys

Add the output to your .env file.
"""

from __future__ import annotations

import click
from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid
from py_vapid.utils import b64urlencode


def generate_vapid_keys() -> tuple[str, str]:
    """Return a new (private, public) key pair, both base64url encoded.

    The private key is DER (PKCS8), the form pywebpush accepts as a string;
    the public key is the uncompressed point browsers expect as
    applicationServerKey.
    """
    vapid = Vapid()
    vapid.generate_keys()
    private = vapid.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = vapid.public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return b64urlencode(private), b64urlencode(public)


@click.command("generate-vapid-keys")
@click.option("--email", default="admin@example.com", help="Contact address for the VAPID claims.")
def generate_vapid_keys_command(email: str) -> None:
    """Print a new VAPID key pair as environment variables."""
    private, public = generate_vapid_keys()
    click.echo("Add these to your .env file:\n")
    click.echo(f"VAPID_PRIVATE_KEY={private}")
    click.echo(f"VAPID_PUBLIC_KEY={public}")
    click.echo(f"VAPID_CLAIMS_EMAIL=mailto:{email}")
