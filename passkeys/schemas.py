"""
Pydantic schemas for the browser module boundary.

Binary fields always travel as unpadded base64url text. Inbound values are
also accepted as padded base64url, raw bytes, or a list of byte values
(how some transports serialize a Uint8Array).
"""

import json
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url, options_to_json
from webauthn.helpers.structs import (
    PublicKeyCredentialCreationOptions,
    PublicKeyCredentialRequestOptions,
)


def _decode_binary(value: Any) -> Any:
    if value is None:
        return value
    if isinstance(value, str):
        return base64url_to_bytes(value.rstrip("="))
    if isinstance(value, bytearray | memoryview):
        return bytes(value)
    if isinstance(value, list):
        return bytes(value)
    return value


WireBytes = Annotated[
    bytes,
    BeforeValidator(_decode_binary),
    PlainSerializer(bytes_to_base64url, return_type=str),
]


class CreationResult(BaseModel):
    """Attestation returned by createPasskey()."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    credential_id: WireBytes = Field(alias="credentialId", min_length=1)
    attestation_object: WireBytes = Field(alias="attestationObject")
    client_data_json: WireBytes = Field(alias="clientDataJSON")


class RetrievalResult(BaseModel):
    """Assertion returned by getPasskey() and getPasskeyConditional()."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_handle: WireBytes = Field(alias="userHandle", default=b"")
    credential_id: WireBytes = Field(alias="credentialId", min_length=1)
    authenticator_data: WireBytes = Field(alias="authenticatorData")
    client_data_json: WireBytes = Field(alias="clientDataJSON")
    signature: WireBytes

    @classmethod
    def from_wire(cls, payload: Any) -> "RetrievalResult":
        """Validate a browser payload, treating a null user handle as empty."""
        if isinstance(payload, dict) and payload.get("userHandle") is None:
            payload = {**payload, "userHandle": b""}
        return cls.model_validate(payload)


def options_to_wire(
    options: PublicKeyCredentialCreationOptions | PublicKeyCredentialRequestOptions,
) -> dict[str, Any]:
    """Render ceremony options as the JSON object passed to the browser module."""
    return json.loads(options_to_json(options))
