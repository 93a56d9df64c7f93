"""
Exceptions for passkey ceremonies.

These are raised inside the core and by browser module implementations.
The provider converts them into CeremonyResult failures at its boundary.
"""


class PasskeyError(Exception):
    """Base exception for passkey ceremony errors."""

    pass


class BrowserError(PasskeyError):
    """
    Raised by a browser module when navigator.credentials rejects.

    `name` carries the DOMException name (e.g. NotAllowedError) so the
    provider can tell a declined prompt from a genuine fault.
    """

    def __init__(self, name: str, message: str = ""):
        super().__init__(f"{name}: {message}" if message else name)
        self.name = name
        self.message = message


class CeremonyCancelledError(PasskeyError):
    """Raised when the provider cancels a ceremony in flight."""

    pass


class ProviderClosedError(CeremonyCancelledError):
    """Raised when a ceremony is requested from a disposed provider."""

    pass


class VerificationError(PasskeyError):
    """Raised when a proof fails verification."""

    pass


class CredentialStoreError(PasskeyError):
    """Raised when the caller's credential uniqueness check fails to answer."""

    pass
