"""Screen selection for the client: sign-in, sign-up, or dashboard.

Transitions:
    SIGNIN    --show_signup-->  SIGNUP
    SIGNUP    --show_signin-->  SIGNIN
    SIGNUP    --registered-->   SIGNIN
    any       --signed_in-->    DASHBOARD
    any       --signed_out-->   SIGNIN
"""

from enum import Enum

from errors import InvalidTransitionError
from shared.logging import get_logger

log = get_logger(__name__)


class View(Enum):
    SIGNIN = "signin"
    SIGNUP = "signup"
    DASHBOARD = "dashboard"


class ViewRouter:
    def __init__(self) -> None:
        self.current = View.SIGNIN

    def _go(self, target: View, *allowed_from: View) -> View:
        if allowed_from and self.current not in allowed_from:
            raise InvalidTransitionError(
                f"Cannot switch from {self.current.value} to {target.value}",
                details={"from": self.current.value, "to": target.value},
            )
        if target != self.current:
            log.debug("view_changed", previous=self.current.value, current=target.value)
        self.current = target
        return target

    def show_signup(self) -> View:
        return self._go(View.SIGNUP, View.SIGNIN, View.SIGNUP)

    def show_signin(self) -> View:
        return self._go(View.SIGNIN, View.SIGNIN, View.SIGNUP)

    def registered(self) -> View:
        return self._go(View.SIGNIN, View.SIGNUP)

    def signed_in(self) -> View:
        return self._go(View.DASHBOARD)

    def signed_out(self) -> View:
        return self._go(View.SIGNIN)
