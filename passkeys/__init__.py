"""
Passkeys - WebAuthn registration and authentication ceremonies.

Issues challenges, shapes requests for the browser credential API, and
verifies the returned proofs against public keys stored by the caller.
"""

from passkeys.config import PasskeyOptions, PasskeySettings, get_default_options, get_settings
from passkeys.constants import BROWSER_MODULE_PATH, FailureReason
from passkeys.exceptions import BrowserError
from passkeys.models import CeremonyResult, Passkey
from passkeys.services import PasskeyProvider, get_passkey_provider

__all__ = [
    "BROWSER_MODULE_PATH",
    "BrowserError",
    "CeremonyResult",
    "FailureReason",
    "Passkey",
    "PasskeyOptions",
    "PasskeyProvider",
    "PasskeySettings",
    "get_default_options",
    "get_passkey_provider",
    "get_settings",
]
