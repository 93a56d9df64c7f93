"""
Passkey aggregate and ceremony results.

The core never stores a Passkey. It builds one per ceremony call and hands
it to the caller, who decides what to persist.
"""

import base64
from dataclasses import dataclass, field, replace
from typing import Generic, TypeVar

from passkeys.constants import FailureReason

T = TypeVar("T")


@dataclass(frozen=True)
class Passkey:
    """
    A WebAuthn credential as seen by one ceremony.

    Persistable fields:
        user_handle: Opaque user id bound to the credential. Empty for
            non-discoverable credentials, in which case the caller resolves
            the user by credential_id.
        credential_id: Primary lookup key, immutable once issued.
        public_key: COSE public key; only set by a successful registration.

    Proof fields (challenge, authenticator_data, client_data_json,
    signature) are only set by an assertion retrieval. They exist to be
    passed straight back to verification and must not be stored.
    """

    user_handle: bytes
    credential_id: bytes
    public_key: bytes | None = None

    challenge: bytes | None = field(default=None, repr=False)
    authenticator_data: bytes | None = field(default=None, repr=False)
    client_data_json: bytes | None = field(default=None, repr=False)
    signature: bytes | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.public_key is not None and self.has_proof_fields:
            raise ValueError("A passkey carries either a public key or assertion proof, not both")

    @property
    def has_proof_fields(self) -> bool:
        return any(
            value is not None
            for value in (self.challenge, self.authenticator_data, self.client_data_json, self.signature)
        )

    @property
    def has_complete_proof(self) -> bool:
        """True when every field needed for verification is present."""
        return None not in (self.challenge, self.authenticator_data, self.client_data_json, self.signature)

    @property
    def user_handle_base64(self) -> str:
        return base64.b64encode(self.user_handle).decode("ascii")

    @property
    def credential_id_base64(self) -> str:
        return base64.b64encode(self.credential_id).decode("ascii")

    @property
    def public_key_base64(self) -> str | None:
        if self.public_key is None:
            return None
        return base64.b64encode(self.public_key).decode("ascii")

    def without_proof(self) -> "Passkey":
        """Return the persistable projection, dropping assertion proof fields."""
        return replace(self, challenge=None, authenticator_data=None, client_data_json=None, signature=None)


@dataclass(frozen=True)
class CeremonyResult(Generic[T]):
    """
    Outcome of a ceremony: a value on success, a reason on failure.

    `detail` is a short human-readable explanation for diagnostics; it is
    not meant to be shown to end users.
    """

    value: T | None = None
    reason: FailureReason | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> "CeremonyResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: FailureReason, detail: str | None = None) -> "CeremonyResult[T]":
        return cls(reason=reason, detail=detail)
