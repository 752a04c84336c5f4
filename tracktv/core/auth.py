"""Authentication context shared by the API client and the synchronizer.

The tracker backend issues bearer tokens; this module only holds one.
A context without a token is unauthenticated and every synchronizer
operation short-circuits without touching the network.
"""

from pydantic import BaseModel, SecretStr

from tracktv.core.config import Settings, get_settings


class AuthContext(BaseModel):
    """Bearer credential plus the derived authenticated flag."""

    token: SecretStr | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AuthContext":
        settings = settings or get_settings()
        return cls(token=settings.api_token)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and bool(self.token.get_secret_value())

    def login(self, token: str) -> None:
        """Store a freshly issued token."""
        self.token = SecretStr(token)

    def logout(self) -> None:
        self.token = None

    def headers(self) -> dict[str, str]:
        """Return the Authorization header for the current token."""
        token = self.token.get_secret_value() if self.token else ""
        return {"Authorization": f"Bearer {token}"}
