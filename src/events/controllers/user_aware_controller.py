import typing as t

from django.contrib.auth.models import AnonymousUser
from ninja_extra import ControllerBase

from accounts.models import TurnstileUser
from events.exceptions import TicketingValidationError


class UserAwareController(ControllerBase):
    def maybe_user(self) -> TurnstileUser | AnonymousUser:
        """Get the user for this request."""
        return t.cast(TurnstileUser | AnonymousUser, self.context.request.user)  # type: ignore[union-attr]

    def user(self) -> TurnstileUser:
        """Get the user for this request."""
        return t.cast(TurnstileUser, self.context.request.user)  # type: ignore[union-attr]

    def authenticated_user(self) -> TurnstileUser | None:
        user = self.maybe_user()
        return None if user.is_anonymous else t.cast(TurnstileUser, user)

    def purchaser_email(self, email: str | None) -> str:
        """The email an order is sent to: the given one, else the logged-in user's."""
        if email:
            return email
        user = self.authenticated_user()
        if user is not None and user.email:
            return user.email
        raise TicketingValidationError("An email address is required.")
