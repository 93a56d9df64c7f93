"""
Passkey registration ceremony.

Builds creation options, asks the browser to create a credential, verifies
the attestation inline and returns the credential for the caller to store.
"""

from collections.abc import Iterable

from pydantic import ValidationError
from webauthn import generate_registration_options
from webauthn.helpers.structs import (
    AuthenticatorSelectionCriteria,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from passkeys.bridge import BrowserModuleHandle
from passkeys.challenges import generate_challenge
from passkeys.config import PasskeyOptions
from passkeys.constants import (
    DECLINED_ERROR_NAMES,
    EXCLUDED_CREDENTIAL_ERROR_NAME,
    SUPPORTED_ALGORITHMS,
    BrowserFunction,
    CeremonyState,
    FailureReason,
)
from passkeys.exceptions import (
    BrowserError,
    CeremonyCancelledError,
    CredentialStoreError,
    VerificationError,
)
from passkeys.identity import filter_credential_ids
from passkeys.lifecycle import CancellationScope
from passkeys.logging import get_logger
from passkeys.models import CeremonyResult, Passkey
from passkeys.schemas import CreationResult, options_to_wire
from passkeys.verification import UniquenessCheck, always_unique, verify_attestation

logger = get_logger(__name__)


class RegistrationOrchestrator:
    """Runs registration ceremonies against one browser module handle."""

    def __init__(self, module: BrowserModuleHandle) -> None:
        self._module = module

    async def create(
        self,
        user_handle: bytes,
        user_name: str,
        display_name: str,
        options: PasskeyOptions,
        scope: CancellationScope,
        exclude_credentials: Iterable[bytes] | None = None,
        is_credential_id_unique: UniquenessCheck = always_unique,
    ) -> CeremonyResult[Passkey]:
        """
        Register a new passkey for a user.

        Args:
            user_handle: Normalized user id
            user_name: Account name shown by the authenticator
            display_name: Friendly name shown by the authenticator
            options: Relying party configuration
            scope: Cancellation scope for this ceremony
            exclude_credentials: Credential ids the user already has
            is_credential_id_unique: Async check consulted after verification

        Returns:
            The new passkey (user handle, credential id, public key), or a failure reason

        Raises:
            CeremonyCancelledError: If the provider cancels the ceremony
        """
        # Exclude existing credentials to prevent re-registration
        excluded = [
            PublicKeyCredentialDescriptor(id=credential_id)
            for credential_id in filter_credential_ids(exclude_credentials)
        ]

        request = generate_registration_options(
            rp_id=options.domain,
            rp_name=options.app_name,
            user_id=user_handle,
            user_name=user_name,
            user_display_name=display_name,
            challenge=generate_challenge(),
            exclude_credentials=excluded or None,
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
            supported_pub_key_algs=SUPPORTED_ALGORITHMS,
        )
        state = CeremonyState.CHALLENGE_ISSUED

        try:
            module = await scope.run(self._module.get)
            state = CeremonyState.AWAITING_CLIENT_RESULT
            payload = await scope.run(
                module.invoke, BrowserFunction.CREATE_PASSKEY, options_to_wire(request)
            )
            creation = CreationResult.model_validate(payload)
        except CeremonyCancelledError:
            raise
        except BrowserError as e:
            if e.name in DECLINED_ERROR_NAMES or e.name == EXCLUDED_CREDENTIAL_ERROR_NAME:
                logger.info("passkey_creation_declined", error=e.name, state=state)
                return CeremonyResult.failure(FailureReason.DECLINED, str(e))
            logger.warning("passkey_creation_browser_error", error=str(e), state=state)
            return CeremonyResult.failure(FailureReason.TRANSPORT_FAULT, str(e))
        except ValidationError as e:
            logger.warning("passkey_creation_malformed_response", error_count=e.error_count())
            return CeremonyResult.failure(FailureReason.TRANSPORT_FAULT, "Malformed creation result")
        except Exception as e:
            logger.warning("passkey_creation_transport_fault", error=str(e), state=state)
            return CeremonyResult.failure(FailureReason.TRANSPORT_FAULT, str(e))

        try:
            verified = await verify_attestation(
                creation, request, options, scope, is_credential_id_unique
            )
        except VerificationError as e:
            logger.warning("passkey_creation_rejected", error=str(e))
            return CeremonyResult.failure(FailureReason.VERIFICATION_REJECTED, str(e))
        except CredentialStoreError as e:
            logger.warning("passkey_creation_store_error", error=str(e))
            return CeremonyResult.failure(FailureReason.TRANSPORT_FAULT, str(e))

        state = CeremonyState.COMPLETED
        logger.info("passkey_created", credential_id=verified.credential_id, state=state)

        return CeremonyResult.success(
            Passkey(
                user_handle=user_handle,
                credential_id=verified.credential_id,
                public_key=verified.public_key,
            )
        )
