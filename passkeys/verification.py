"""
Proof verification using the webauthn library.

Registration verifies its attestation inline; authentication verification
is a separate, stateless call made by the caller after it has looked up the
stored public key for the returned credential id.
"""

import asyncio
import hmac
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from webauthn import verify_authentication_response, verify_registration_response
from webauthn.helpers import bytes_to_base64url
from webauthn.helpers.structs import (
    AuthenticationCredential,
    AuthenticatorAssertionResponse,
    AuthenticatorAttestationResponse,
    PublicKeyCredentialCreationOptions,
    RegistrationCredential,
)

from passkeys.config import PasskeyOptions
from passkeys.constants import STORED_SIGN_COUNT, SUPPORTED_ALGORITHMS, FailureReason
from passkeys.exceptions import CeremonyCancelledError, CredentialStoreError, VerificationError
from passkeys.lifecycle import CancellationScope
from passkeys.logging import get_logger
from passkeys.models import CeremonyResult, Passkey
from passkeys.schemas import CreationResult

logger = get_logger(__name__)

UniquenessCheck = Callable[[bytes, bytes], Awaitable[bool]]


async def always_unique(credential_id: bytes, user_handle: bytes) -> bool:
    """Default uniqueness check: duplicate policy belongs to the caller's store."""
    return True


@dataclass(frozen=True)
class VerifiedCredential:
    """Credential extracted from a verified attestation."""

    credential_id: bytes
    public_key: bytes


def _verify_attestation(
    creation: CreationResult,
    request: PublicKeyCredentialCreationOptions,
    options: PasskeyOptions,
) -> VerifiedCredential:
    credential = RegistrationCredential(
        id=bytes_to_base64url(creation.credential_id),
        raw_id=creation.credential_id,
        response=AuthenticatorAttestationResponse(
            client_data_json=creation.client_data_json,
            attestation_object=creation.attestation_object,
        ),
    )
    try:
        verification = verify_registration_response(
            credential=credential,
            expected_challenge=request.challenge,
            expected_rp_id=options.domain,
            expected_origin=list(options.origins),
            supported_pub_key_algs=SUPPORTED_ALGORITHMS,
        )
    except Exception as e:
        raise VerificationError(f"Registration verification failed: {e}") from e

    return VerifiedCredential(
        credential_id=verification.credential_id,
        public_key=verification.credential_public_key,
    )


async def verify_attestation(
    creation: CreationResult,
    request: PublicKeyCredentialCreationOptions,
    options: PasskeyOptions,
    scope: CancellationScope,
    is_credential_id_unique: UniquenessCheck = always_unique,
) -> VerifiedCredential:
    """
    Verify a browser attestation against the request that produced it.

    Checks origin, rpId hash, challenge and attestation structure, then asks
    the uniqueness check whether the credential id may be registered.

    Raises:
        VerificationError: If any check fails
        CredentialStoreError: If the uniqueness check itself raises
        CeremonyCancelledError: If the scope is cancelled meanwhile
    """
    verified = await scope.run(asyncio.to_thread, _verify_attestation, creation, request, options)

    try:
        unique = await scope.run(is_credential_id_unique, verified.credential_id, request.user.id)
    except CeremonyCancelledError:
        raise
    except Exception as e:
        raise CredentialStoreError(f"Uniqueness check failed: {e}") from e

    if not unique:
        raise VerificationError("Credential id is already registered")

    return verified


def _owns_credential(assertion_user_handle: bytes, expected_user_handle: bytes) -> bool:
    # Non-discoverable credentials return no user handle; the caller already
    # resolved the owner through the credential id.
    if not assertion_user_handle:
        return True
    return hmac.compare_digest(assertion_user_handle, expected_user_handle)


def _assertion_credential(passkey: Passkey) -> tuple[AuthenticationCredential, bytes] | None:
    """Rebuild the webauthn credential from a retrieved passkey, None if proof is missing."""
    challenge = passkey.challenge
    authenticator_data = passkey.authenticator_data
    client_data_json = passkey.client_data_json
    signature = passkey.signature
    if challenge is None or authenticator_data is None or client_data_json is None or signature is None:
        return None

    credential = AuthenticationCredential(
        id=bytes_to_base64url(passkey.credential_id),
        raw_id=passkey.credential_id,
        response=AuthenticatorAssertionResponse(
            client_data_json=client_data_json,
            authenticator_data=authenticator_data,
            signature=signature,
            user_handle=passkey.user_handle or None,
        ),
    )
    return credential, challenge


def _verify_assertion(
    credential: AuthenticationCredential,
    challenge: bytes,
    expected_user_handle: bytes,
    public_key: bytes,
    options: PasskeyOptions,
) -> int:
    try:
        verification = verify_authentication_response(
            credential=credential,
            expected_challenge=challenge,
            expected_rp_id=options.domain,
            expected_origin=list(options.origins),
            credential_public_key=public_key,
            credential_current_sign_count=STORED_SIGN_COUNT,
        )
    except Exception as e:
        raise VerificationError(f"Authentication verification failed: {e}") from e

    if not _owns_credential(credential.response.user_handle or b"", expected_user_handle):
        raise VerificationError("User handle does not own this credential")

    return verification.new_sign_count


class VerificationEngine:
    """
    Stateless verification of retrieved assertions.

    A Passkey returned by an assertion retrieval carries the challenge and
    proof bytes. Verification checks them against the caller's stored public
    key and expected user handle. The stored signature counter is always 0,
    so cloned authenticators cannot be detected here; the authenticator's
    counter is reported back so callers can track it themselves.
    """

    async def verify(
        self,
        passkey: Passkey,
        expected_user_handle: bytes,
        public_key: bytes,
        options: PasskeyOptions,
        scope: CancellationScope,
    ) -> CeremonyResult[int]:
        """
        Verify an assertion.

        Returns:
            The authenticator's sign count on success, or a failure reason
        """
        assertion = _assertion_credential(passkey)
        if assertion is None:
            logger.info("passkey_verification_skipped", credential_id=passkey.credential_id)
            return CeremonyResult.failure(
                FailureReason.INCOMPLETE_PROOF, "Passkey carries no assertion proof"
            )

        credential, challenge = assertion
        try:
            sign_count = await scope.run(
                asyncio.to_thread,
                _verify_assertion,
                credential,
                challenge,
                expected_user_handle,
                public_key,
                options,
            )
        except VerificationError as e:
            logger.warning(
                "passkey_verification_failed",
                credential_id=passkey.credential_id,
                error=str(e),
            )
            return CeremonyResult.failure(FailureReason.VERIFICATION_REJECTED, str(e))

        logger.info("passkey_verified", credential_id=passkey.credential_id)
        return CeremonyResult.success(sign_count)
