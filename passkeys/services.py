"""
Passkey (WebAuthn) provider.

Caller-facing entry point for passkey ceremonies. Owns the browser module
handle and the root cancellation scope shared by every ceremony it runs.
Storage is entirely the caller's job: the provider returns Passkey values
and takes stored public keys back as arguments.

Each operation comes in two shapes:
    - `*_result` methods return a CeremonyResult with a FailureReason.
    - The plain methods return Passkey | None or bool for callers that do
      not need to know why a ceremony failed.
"""

import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from passkeys.assertion import AssertionOrchestrator
from passkeys.bridge import BrowserModuleHandle, ModuleLoader
from passkeys.config import PasskeyOptions, get_default_options
from passkeys.constants import BrowserFunction, FailureReason
from passkeys.exceptions import CeremonyCancelledError
from passkeys.identity import UserId, decode_public_key, normalize_user_id, user_id_text
from passkeys.lifecycle import CancellationScope
from passkeys.logging import bound_contextvars, get_logger
from passkeys.models import CeremonyResult, Passkey
from passkeys.registration import RegistrationOrchestrator
from passkeys.verification import UniquenessCheck, VerificationEngine, always_unique

logger = get_logger(__name__)

T = TypeVar("T")


class PasskeyProvider:
    """
    Service for passkey registration and authentication ceremonies.

    Use as an async context manager, or call `aclose()` when the page or
    connection that owns the browser module goes away. Disposal cancels
    every ceremony still waiting on the browser; ceremonies requested after
    disposal fail immediately with FailureReason.CANCELLED.
    """

    def __init__(self, module_loader: ModuleLoader, options: PasskeyOptions | None = None) -> None:
        self.options = options or get_default_options()
        self._module = BrowserModuleHandle(module_loader)
        self._scope = CancellationScope()
        self._registration = RegistrationOrchestrator(self._module)
        self._assertion = AssertionOrchestrator(self._module)
        self._verification = VerificationEngine()

    @property
    def closed(self) -> bool:
        return self._scope.cancelled

    async def __aenter__(self) -> "PasskeyProvider":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cancel in-flight ceremonies and dispose the browser module."""
        if self._scope.cancelled:
            return
        self._scope.cancel()
        logger.debug("passkey_provider_closed")
        await self._module.dispose()

    async def _ceremony(
        self, name: str, run: Callable[[CancellationScope], Awaitable[CeremonyResult[T]]]
    ) -> CeremonyResult[T]:
        """Run one ceremony in a child scope of the provider."""
        try:
            scope = self._scope.child()
        except CeremonyCancelledError as e:
            logger.info("passkey_ceremony_rejected", ceremony=name, reason="provider_closed")
            return CeremonyResult.failure(FailureReason.CANCELLED, str(e))

        with scope, bound_contextvars(ceremony=name, ceremony_id=uuid.uuid4().hex):
            try:
                return await run(scope)
            except CeremonyCancelledError as e:
                logger.info("passkey_ceremony_cancelled", ceremony=name)
                return CeremonyResult.failure(FailureReason.CANCELLED, str(e))

    # --- Capability probes ---

    async def _probe(self, function: BrowserFunction) -> bool:
        if self._scope.cancelled:
            return False
        try:
            with self._scope.child() as scope:
                module = await scope.run(self._module.get)
                return bool(await scope.run(module.invoke, function))
        except Exception as e:
            # Not running in a browser, or the module failed to load
            logger.info("passkey_probe_failed", function=function, error=str(e))
            return False

    async def are_passkeys_supported(self) -> bool:
        """Whether the browser exposes the WebAuthn credential API."""
        return await self._probe(BrowserFunction.ARE_PASSKEYS_SUPPORTED)

    async def is_conditional_mediation_available(self) -> bool:
        """Whether the browser supports passkey autofill."""
        return await self._probe(BrowserFunction.IS_CONDITIONAL_MEDIATION_AVAILABLE)

    # --- Registration ---

    async def create_passkey_result(
        self,
        user_id: UserId,
        user_name: str | None = None,
        display_name: str | None = None,
        options: PasskeyOptions | None = None,
        exclude_credentials: Iterable[bytes] | None = None,
        is_credential_id_unique: UniquenessCheck = always_unique,
    ) -> CeremonyResult[Passkey]:
        """
        Register a new passkey.

        Args:
            user_id: User identity as bytes, text or UUID
            user_name: Account name; defaults to the id text for str/UUID ids
            display_name: Friendly name; defaults to user_name
            options: Per-call relying party override
            exclude_credentials: Credential ids already registered to the user
            is_credential_id_unique: Async check against the caller's store

        Returns:
            CeremonyResult with the new Passkey

        Raises:
            ValueError: If user_id is bytes and no user_name is given
        """
        user_handle = normalize_user_id(user_id)
        user_name = user_name or user_id_text(user_id)
        if not user_name:
            raise ValueError("user_name is required when user_id is bytes")
        display_name = display_name or user_name
        options = options or self.options

        return await self._ceremony(
            "registration",
            lambda scope: self._registration.create(
                user_handle,
                user_name,
                display_name,
                options,
                scope,
                exclude_credentials=exclude_credentials,
                is_credential_id_unique=is_credential_id_unique,
            ),
        )

    async def create_passkey(
        self,
        user_id: UserId,
        user_name: str | None = None,
        display_name: str | None = None,
        options: PasskeyOptions | None = None,
        exclude_credentials: Iterable[bytes] | None = None,
    ) -> Passkey | None:
        """Register a new passkey; None on any failure."""
        result = await self.create_passkey_result(
            user_id, user_name, display_name, options, exclude_credentials
        )
        return result.value

    # --- Authentication ---

    async def get_passkey_result(
        self,
        options: PasskeyOptions | None = None,
        allow_credentials: Iterable[bytes] | None = None,
        conditional: bool = False,
    ) -> CeremonyResult[Passkey]:
        """
        Ask the browser for an assertion.

        The returned Passkey holds the challenge and proof for a later
        `verify_passkey` call; look up the stored public key by its
        credential_id in between.
        """
        options = options or self.options
        return await self._ceremony(
            "conditional_authentication" if conditional else "authentication",
            lambda scope: self._assertion.get(options, scope, allow_credentials, conditional),
        )

    async def get_passkey(
        self,
        options: PasskeyOptions | None = None,
        allow_credentials: Iterable[bytes] | None = None,
    ) -> Passkey | None:
        """Blocking retrieval; None on any failure."""
        result = await self.get_passkey_result(options, allow_credentials)
        return result.value

    async def get_passkey_conditional(
        self,
        options: PasskeyOptions | None = None,
        allow_credentials: Iterable[bytes] | None = None,
    ) -> Passkey | None:
        """Autofill retrieval; None when the user has not picked a credential or on failure."""
        result = await self.get_passkey_result(options, allow_credentials, conditional=True)
        return result.value

    # --- Verification ---

    async def verify_passkey_result(
        self,
        passkey: Passkey,
        user_id: UserId,
        public_key: bytes | str,
        options: PasskeyOptions | None = None,
    ) -> CeremonyResult[int]:
        """
        Verify a retrieved assertion against a stored credential.

        Args:
            passkey: Passkey returned by get_passkey / get_passkey_conditional
            user_id: Expected owner, as bytes, text or UUID
            public_key: Stored public key, raw bytes or standard base64 text
            options: Per-call relying party override

        Returns:
            CeremonyResult with the authenticator's sign count
        """
        expected_user_handle = normalize_user_id(user_id)
        try:
            stored_public_key = decode_public_key(public_key)
        except ValueError as e:
            logger.warning("passkey_public_key_invalid", credential_id=passkey.credential_id)
            return CeremonyResult.failure(FailureReason.VERIFICATION_REJECTED, f"Invalid public key: {e}")
        options = options or self.options

        return await self._ceremony(
            "verification",
            lambda scope: self._verification.verify(
                passkey, expected_user_handle, stored_public_key, options, scope
            ),
        )

    async def verify_passkey(
        self,
        passkey: Passkey,
        user_id: UserId,
        public_key: bytes | str,
        options: PasskeyOptions | None = None,
    ) -> bool:
        """Verify a retrieved assertion; False on any failure."""
        result = await self.verify_passkey_result(passkey, user_id, public_key, options)
        return result.ok


def get_passkey_provider(
    module_loader: ModuleLoader, options: PasskeyOptions | None = None
) -> PasskeyProvider:
    """Get a PasskeyProvider for one browser connection."""
    return PasskeyProvider(module_loader, options)
