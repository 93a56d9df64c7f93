"""
Constants for passkey ceremonies.

Defines enums and constants shared by the orchestrators and the provider.
"""

from enum import StrEnum
from pathlib import Path

from webauthn.helpers.cose import COSEAlgorithmIdentifier

# Challenge size in bytes, issued fresh for every ceremony
CHALLENGE_LENGTH = 32

# Acceptable credential algorithms, most preferred first
SUPPORTED_ALGORITHMS = [
    COSEAlgorithmIdentifier.ECDSA_SHA_256,
    COSEAlgorithmIdentifier.RSASSA_PKCS1_v1_5_SHA_256,
    COSEAlgorithmIdentifier.EDDSA,
]

# Stored signature counter handed to the verifier; counters are not persisted
STORED_SIGN_COUNT = 0

# Browser module shipped with the package, served by the host application
BROWSER_MODULE_PATH = Path(__file__).resolve().parent / "static" / "passkeys" / "passkeys.js"


class BrowserFunction(StrEnum):
    """Functions exported by the browser module."""

    ARE_PASSKEYS_SUPPORTED = "arePasskeysSupported"
    IS_CONDITIONAL_MEDIATION_AVAILABLE = "isConditionalMediationAvailable"
    CREATE_PASSKEY = "createPasskey"
    GET_PASSKEY = "getPasskey"
    GET_PASSKEY_CONDITIONAL = "getPasskeyConditional"


class FailureReason(StrEnum):
    """
    Why a ceremony did not produce a result.

    The convenience API flattens all of these into None / False; the
    detailed API reports them through CeremonyResult.reason.
    """

    UNSUPPORTED = "unsupported"
    DECLINED = "declined"
    NO_SELECTION = "no_selection"
    CANCELLED = "cancelled"
    TRANSPORT_FAULT = "transport_fault"
    VERIFICATION_REJECTED = "verification_rejected"
    INCOMPLETE_PROOF = "incomplete_proof"


class CeremonyState(StrEnum):
    """Lifecycle of a single registration or authentication ceremony."""

    IDLE = "idle"
    CHALLENGE_ISSUED = "challenge_issued"
    AWAITING_CLIENT_RESULT = "awaiting_client_result"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# DOMException names raised by navigator.credentials when the user backs out
DECLINED_ERROR_NAMES = frozenset({"NotAllowedError", "AbortError"})

# Raised by navigator.credentials.create when an excluded credential is present
EXCLUDED_CREDENTIAL_ERROR_NAME = "InvalidStateError"
