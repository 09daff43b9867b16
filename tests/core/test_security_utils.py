import pytest

from src.core.utils import security


@pytest.mark.asyncio
async def test_hash_and_verify_password_success() -> None:
    hashed = security.hash_password("P@ss1")

    assert hashed != "P@ss1"
    assert await security.verify_password("P@ss1", hashed) is True


@pytest.mark.asyncio
async def test_verify_password_fail() -> None:
    hashed = security.hash_password("original")

    assert await security.verify_password("other", hashed) is False


@pytest.mark.asyncio
async def test_verify_password_with_unparseable_hash() -> None:
    assert await security.verify_password("P@ss1", "not-a-hash") is False


def test_mask_email_valid_and_invalid() -> None:
    assert security.mask_email("alice@x.com") == "al***@x.***"
    assert security.mask_email("bad-email") == "***"


def test_normalize_email() -> None:
    assert security.normalize_email("  ALICE@X.com  ") == "alice@x.com"
