"""
User identity normalization.

Every ceremony works on a single byte form of the user identity. Text ids
are UTF-8 encoded and UUIDs go through their canonical text form first, so
``UUID(x)`` and ``str(UUID(x))`` produce the same user handle.
"""

import base64
from collections.abc import Iterable
from uuid import UUID

UserId = bytes | str | UUID


def normalize_user_id(user_id: UserId) -> bytes:
    """
    Convert a user identity into its canonical bytes.

    Args:
        user_id: Opaque bytes, text, or a UUID

    Returns:
        Bytes used as the WebAuthn user handle
    """
    if isinstance(user_id, bytes | bytearray | memoryview):
        return bytes(user_id)
    if isinstance(user_id, UUID):
        user_id = str(user_id)
    if isinstance(user_id, str):
        return user_id.encode("utf-8")
    raise TypeError(f"Unsupported user id type: {type(user_id).__name__}")


def user_id_text(user_id: UserId) -> str | None:
    """Text form of a str or UUID identity, None for raw bytes."""
    if isinstance(user_id, UUID):
        return str(user_id)
    if isinstance(user_id, str):
        return user_id
    return None


def decode_public_key(public_key: bytes | str) -> bytes:
    """
    Decode a stored public key.

    Text keys are standard base64, as produced by Passkey.public_key_base64.

    Raises:
        binascii.Error: If the text is not valid base64
    """
    if isinstance(public_key, str):
        return base64.b64decode(public_key, validate=True)
    return bytes(public_key)


def filter_credential_ids(credential_ids: Iterable[bytes] | None) -> list[bytes]:
    """Drop empty credential ids, keeping order."""
    if not credential_ids:
        return []
    return [bytes(credential_id) for credential_id in credential_ids if credential_id]
