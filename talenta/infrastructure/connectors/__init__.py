"""Connectors for the Talenta REST API."""

from .credentials import (
    ChainedCredentialProvider,
    StaticCredentialProvider,
    TokenFileCredentialProvider,
    credential_provider_from_settings,
)
from .talenta_api import TalentaApiConnector, audio_from_payload

__all__ = [
    "ChainedCredentialProvider",
    "StaticCredentialProvider",
    "TalentaApiConnector",
    "TokenFileCredentialProvider",
    "audio_from_payload",
    "credential_provider_from_settings",
]
