"""
Passkey retrieval ceremony.

Retrieval and verification are deliberately separate: the returned Passkey
carries the challenge and proof bytes so the caller can look up the stored
public key by credential id before calling verification.
"""

from collections.abc import Iterable

from pydantic import ValidationError
from webauthn import generate_authentication_options
from webauthn.helpers.structs import (
    PublicKeyCredentialDescriptor,
    UserVerificationRequirement,
)

from passkeys.bridge import BrowserModuleHandle
from passkeys.challenges import generate_challenge
from passkeys.config import PasskeyOptions
from passkeys.constants import (
    DECLINED_ERROR_NAMES,
    BrowserFunction,
    CeremonyState,
    FailureReason,
)
from passkeys.exceptions import BrowserError, CeremonyCancelledError
from passkeys.identity import filter_credential_ids
from passkeys.lifecycle import CancellationScope
from passkeys.logging import get_logger
from passkeys.models import CeremonyResult, Passkey
from passkeys.schemas import RetrievalResult, options_to_wire

logger = get_logger(__name__)


class AssertionOrchestrator:
    """Runs blocking and conditional (autofill) retrievals."""

    def __init__(self, module: BrowserModuleHandle) -> None:
        self._module = module

    async def get(
        self,
        options: PasskeyOptions,
        scope: CancellationScope,
        allow_credentials: Iterable[bytes] | None = None,
        conditional: bool = False,
    ) -> CeremonyResult[Passkey]:
        """
        Retrieve an assertion from the browser.

        Args:
            options: Relying party configuration
            scope: Cancellation scope for this ceremony
            allow_credentials: Credential ids for non-discoverable credentials
                (e.g. security keys); omit to let the browser offer any
                discoverable credential
            conditional: Use conditional mediation (autofill UI)

        Returns:
            A passkey carrying identity and proof fields, or a failure reason.
            A conditional retrieval where the user picked nothing fails with
            FailureReason.NO_SELECTION.

        Raises:
            CeremonyCancelledError: If the provider cancels the ceremony
        """
        allowed = [
            PublicKeyCredentialDescriptor(id=credential_id)
            for credential_id in filter_credential_ids(allow_credentials)
        ]

        challenge = generate_challenge()
        request = generate_authentication_options(
            rp_id=options.domain,
            challenge=challenge,
            allow_credentials=allowed or None,
            user_verification=UserVerificationRequirement.PREFERRED,
        )
        state = CeremonyState.CHALLENGE_ISSUED
        function = (
            BrowserFunction.GET_PASSKEY_CONDITIONAL if conditional else BrowserFunction.GET_PASSKEY
        )

        try:
            module = await scope.run(self._module.get)
            state = CeremonyState.AWAITING_CLIENT_RESULT
            payload = await scope.run(module.invoke, function, options_to_wire(request))
            if payload is None and conditional:
                logger.info("passkey_retrieval_no_selection")
                return CeremonyResult.failure(FailureReason.NO_SELECTION, "No credential selected")
            retrieval = RetrievalResult.from_wire(payload)
        except CeremonyCancelledError:
            raise
        except BrowserError as e:
            if e.name in DECLINED_ERROR_NAMES:
                logger.info("passkey_retrieval_declined", error=e.name, conditional=conditional)
                return CeremonyResult.failure(FailureReason.DECLINED, str(e))
            logger.warning("passkey_retrieval_browser_error", error=str(e), state=state)
            return CeremonyResult.failure(FailureReason.TRANSPORT_FAULT, str(e))
        except ValidationError as e:
            logger.warning("passkey_retrieval_malformed_response", error_count=e.error_count())
            return CeremonyResult.failure(FailureReason.TRANSPORT_FAULT, "Malformed retrieval result")
        except Exception as e:
            logger.warning("passkey_retrieval_transport_fault", error=str(e), state=state)
            return CeremonyResult.failure(FailureReason.TRANSPORT_FAULT, str(e))

        logger.info(
            "passkey_retrieved",
            credential_id=retrieval.credential_id,
            conditional=conditional,
            state=CeremonyState.COMPLETED,
        )

        return CeremonyResult.success(
            Passkey(
                user_handle=retrieval.user_handle,
                credential_id=retrieval.credential_id,
                challenge=challenge,
                authenticator_data=retrieval.authenticator_data,
                client_data_json=retrieval.client_data_json,
                signature=retrieval.signature,
            )
        )
