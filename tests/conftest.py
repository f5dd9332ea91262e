"""Pytest configuration and fixtures."""

from collections.abc import Iterator

import pytest

from solana_wallet_forensics.config import clear_settings_cache


@pytest.fixture
def focal_address() -> str:
    """Sample base58 wallet address used as the analysis target."""
    return "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.fixture
def counterparty_address() -> str:
    """Sample counterparty wallet address."""
    return "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


@pytest.fixture
def sample_mint() -> str:
    """USDC mint on Solana."""
    return "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Reset the cached settings around every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
