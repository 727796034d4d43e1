"""Bearer token providers for the Talenta API."""

import os
from pathlib import Path

from attrs import define, field

from talenta.config import get_logger, settings
from talenta.domain.repositories import CredentialProvider

logger = get_logger(__name__).bind(service="credentials")


@define(frozen=True, slots=True)
class StaticCredentialProvider:
    """Provider holding a fixed token, e.g. from an environment variable."""

    token: str | None = field(default=None, repr=False)

    def get_token(self) -> str | None:
        return self.token or None


@define(slots=True)
class TokenFileCredentialProvider:
    """Provider reading the token saved by ``talenta login``.

    The file is re-read on every call so a new sign-in takes effect without
    restarting a long-running session.
    """

    path: Path = field(converter=Path)

    def get_token(self) -> str | None:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token.strip() + "\n", encoding="utf-8")
        self.path.chmod(0o600)
        logger.info(f"Saved API token to {self.path}")

    def clear(self) -> bool:
        """Delete the saved token; returns False if there was none."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Removed API token at {self.path}")
        return True


@define(frozen=True, slots=True)
class ChainedCredentialProvider:
    """First provider with a token wins."""

    providers: tuple[CredentialProvider, ...] = field(converter=tuple)

    def get_token(self) -> str | None:
        for provider in self.providers:
            token = provider.get_token()
            if token:
                return token
        return None


def credential_provider_from_settings() -> ChainedCredentialProvider:
    """Token from settings or ``TALENTA_TOKEN``, else from the token file."""
    token = settings.credentials.api_token or os.getenv("TALENTA_TOKEN")
    return ChainedCredentialProvider(
        providers=(
            StaticCredentialProvider(token),
            TokenFileCredentialProvider(settings.credentials.token_file),
        )
    )
