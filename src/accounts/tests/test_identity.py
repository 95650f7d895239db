from unittest.mock import patch

import pytest
from django.db import IntegrityError

from accounts.models import TurnstileUser
from accounts.service.identity import get_or_create_guest_user
from conftest import TurnstileUserFactory

pytestmark = pytest.mark.django_db


class TestGetOrCreateGuestUser:
    def test_creates_guest_with_normalized_email(self) -> None:
        user = get_or_create_guest_user("  Jane.Doe@Example.COM ")

        assert user.guest is True
        assert user.email == "jane.doe@example.com"
        assert user.username == "jane.doe@example.com"
        assert not user.has_usable_password()

    def test_returns_existing_account_case_insensitively(self, turnstile_user_factory: TurnstileUserFactory) -> None:
        existing = turnstile_user_factory(email="member@example.com")

        user = get_or_create_guest_user("MEMBER@example.com")

        assert user == existing
        assert TurnstileUser.objects.filter(email__iexact="member@example.com").count() == 1

    def test_is_idempotent(self) -> None:
        first = get_or_create_guest_user("guest@example.com")
        second = get_or_create_guest_user("guest@example.com")

        assert first == second
        assert TurnstileUser.objects.count() == 1

    def test_concurrent_creation_returns_winner(self) -> None:
        winner = TurnstileUser.objects.create(username="race@example.com", email="", guest=True)

        # The lookup misses (email is empty on the winner) and the insert collides on username.
        with patch.object(TurnstileUser.objects, "create", side_effect=IntegrityError("duplicate")):
            user = get_or_create_guest_user("race@example.com")

        assert user == winner
