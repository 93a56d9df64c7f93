"""
Shared pytest fixtures for all tests.

Factories and fakes live in tests/passkeys/factories.py:

    from tests.passkeys.factories import PasskeyOptionsFactory, SoftwareAuthenticator

Example usage:

    async def test_something(provider, browser):
        passkey = await provider.create_passkey("user-1")
        assert passkey is not None
"""

import pytest

from passkeys.config import PasskeyOptions
from passkeys.services import PasskeyProvider
from tests.passkeys.factories import (
    CountingLoader,
    FakeBrowserModule,
    PasskeyOptionsFactory,
    SoftwareAuthenticator,
)


@pytest.fixture
def options() -> PasskeyOptions:
    """Relying party for example.com served from https://example.com."""
    return PasskeyOptionsFactory()


@pytest.fixture
def authenticator() -> SoftwareAuthenticator:
    """A fresh software authenticator with no credentials."""
    return SoftwareAuthenticator()


@pytest.fixture
def browser(authenticator: SoftwareAuthenticator) -> FakeBrowserModule:
    """Fake browser module backed by the software authenticator."""
    return FakeBrowserModule(authenticator)


@pytest.fixture
def loader(browser: FakeBrowserModule) -> CountingLoader:
    """Module loader that counts how often the browser module is loaded."""
    return CountingLoader(browser)


@pytest.fixture
async def provider(loader: CountingLoader, options: PasskeyOptions):
    """
    PasskeyProvider wired to the fake browser module.

    Disposed after the test.
    """
    provider = PasskeyProvider(loader, options)
    yield provider
    await provider.aclose()
