"""Identity of the user the client acts for."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserIdentity:
    """
    The acting user as the client sees it.

    A demo identity is pseudo-authenticated with no backend account; the
    real-time layer stays inert for it.
    """

    user_id: str | None
    authenticated: bool = True
    is_demo: bool = False

    @property
    def is_real_time_eligible(self) -> bool:
        """True for an authenticated, non-demo user with a backend id."""
        return self.authenticated and not self.is_demo and bool(self.user_id)

    @classmethod
    def demo(cls, user_id: str = "demo-user") -> "UserIdentity":
        return cls(user_id=user_id, authenticated=True, is_demo=True)

    @classmethod
    def anonymous(cls) -> "UserIdentity":
        return cls(user_id=None, authenticated=False)
