"""Project-wide fixtures."""

import secrets
import string
import typing as t
from datetime import datetime, timedelta

import faker
import pytest
from django.core.cache import cache
from django.utils import timezone
from pytest import MonkeyPatch

from accounts.models import TurnstileUser
from turnstile.celery import app as celery_app


@pytest.fixture(autouse=True)
def increase_rate_limit(monkeypatch: MonkeyPatch) -> None:
    """Raise the throttles so tests can hammer endpoints."""
    throttles = ("AnonDefaultThrottle", "UserDefaultThrottle", "WriteThrottle", "CheckoutThrottle", "WebhookThrottle")
    for throttle in throttles:
        monkeypatch.setattr(f"common.throttling.{throttle}.rate", "10000/min")


@pytest.fixture(autouse=True)
def clear_cache() -> None:
    """Throttle history lives in the cache; start every test with a clean one."""
    cache.clear()


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    This ensures that Celery tasks run immediately in the same process,
    allowing tests to verify their side effects without async complications.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True
    celery_app.conf.update(task_always_eager=True, task_eager_propagates=True)


@pytest.fixture(autouse=True)
def ticketing_settings(settings: t.Any) -> None:
    """Deterministic secrets and email routing."""
    settings.TICKET_SECRET = "test-ticket-secret"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test"
    settings.BRIDGE_WEBHOOK_SECRET = "bridge_test"
    settings.ALLOW_UNSIGNED_WEBHOOKS = False
    settings.LIVE_EMAILS = False
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"


class TurnstileUserFactory:
    """Factory for creating TurnstileUser instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> TurnstileUser:
        username = kwargs.pop(
            "username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)) + "@user.test"
        )
        email = kwargs.pop("email", username + ("@test.com" if "@" not in username else ""))
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        return TurnstileUser.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> TurnstileUser:
        return self.create_user(**kwargs)


@pytest.fixture
def turnstile_user_factory() -> TurnstileUserFactory:
    return TurnstileUserFactory()


@pytest.fixture
def superuser(turnstile_user_factory: TurnstileUserFactory) -> TurnstileUser:
    """A superuser."""
    return turnstile_user_factory(is_superuser=True, is_staff=True)


@pytest.fixture
def next_week() -> datetime:
    return timezone.now() + timedelta(days=7)
