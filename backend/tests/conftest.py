"""Shared fixtures: settings environment and in-memory stand-ins for Mongo/Stripe."""
import os

# Settings are built at import time, so the environment must be ready first.
os.environ.setdefault("DB__HOST", "localhost")
os.environ.setdefault("DB__USER", "skynet")
os.environ.setdefault("DB__PASSWORD", "p@ss:word/1")
os.environ.setdefault("SECURITY__JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("STRIPE__API_KEY", "sk_test_123")
os.environ.setdefault("STRIPE__WEBHOOK_SECRET", "whsec_test")

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId

from accounts.models.user import Tier, User
from accounts.services.tiers import TierMapper
from tests.fakes import FakeDatabase

FREE_PLAN = "prod_free"
PREMIUM5_PLAN = "prod_p5"
PREMIUM20_PLAN = "prod_p20"


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def tiers() -> TierMapper:
    return TierMapper({
        FREE_PLAN: Tier.FREE,
        PREMIUM5_PLAN: Tier.PREMIUM5,
        PREMIUM20_PLAN: Tier.PREMIUM20,
    })


@pytest.fixture
def user() -> User:
    return User(
        id=ObjectId(),
        sub="be7a3f8e-1b2c-4d5e-9f00-112233445566",
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        stripe_id="cus_123",
        tier=Tier.FREE,
        created_at=datetime(2021, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def user_repository(user) -> AsyncMock:
    """UserRepository stand-in that always finds `user`."""
    repo = AsyncMock()
    repo.get_by_stripe_id.side_effect = lambda stripe_id: user.model_copy()
    repo.get_by_sub.side_effect = lambda sub: user.model_copy()
    repo.update_subscription_if_unchanged.return_value = True

    async def set_tier(u, tier):
        u.tier = tier
        return u

    repo.set_tier.side_effect = set_tier
    return repo


@pytest.fixture
def gateway() -> AsyncMock:
    gw = AsyncMock()
    gw.create_customer.return_value = "cus_new"
    return gw
