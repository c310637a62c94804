"""
Credentials for authenticated fetches and pushes.

A GitHub App installation token is minted from the app's private key and
renewed shortly before it expires. A static token is used as is.
"""
import base64
import json
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..config.global_config_loader import CredentialsConfig
from ..core.exceptions import ConfigurationError
from ..net.http_client import HttpClient


GITHUB_ACCEPT = "application/vnd.github+json"

# GitHub rejects app tokens that live longer than ten minutes
JWT_LIFETIME = 540
JWT_CLOCK_DRIFT = 60

REFRESH_MARGIN = 60


@dataclass(frozen=True)
class RemoteCredentials:
    """Username and token for HTTP basic authentication"""
    username: str
    token: str
    expires_at: Optional[datetime] = None

    def auth_header(self) -> str:
        """The ``Authorization`` header line git sends with each request"""
        pair = f"{self.username}:{self.token}".encode('utf-8')
        return f"Authorization: Basic {base64.b64encode(pair).decode('ascii')}"

    def expires_within(self, seconds: float, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return (self.expires_at - now).total_seconds() <= seconds


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode('ascii')


def _b64url_json(value: Dict[str, Any]) -> str:
    return _b64url(json.dumps(value, separators=(',', ':')).encode('utf-8'))


def load_private_key(pem: str) -> rsa.RSAPrivateKey:
    """
    Load an RSA private key from PEM text.

    Both ``BEGIN RSA PRIVATE KEY`` (PKCS#1) and ``BEGIN PRIVATE KEY``
    (PKCS#8) encodings are accepted.

    Raises:
        ConfigurationError: If the text is not an unencrypted RSA key
    """
    try:
        key = serialization.load_pem_private_key(pem.encode('utf-8'), password=None)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid GitHub App private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ConfigurationError("GitHub App private key must be an RSA key")
    return key


def app_jwt(app_id: str, key: rsa.RSAPrivateKey, now: Optional[int] = None) -> str:
    """
    Sign a short-lived RS256 JSON Web Token identifying a GitHub App.

    Args:
        app_id: App id, used as the issuer
        key: The app's private key
        now: Unix time to issue at, defaults to the current time
    """
    issued = int(time.time()) if now is None else now
    header = {"alg": "RS256", "typ": "JWT"}
    payload = {
        "iat": issued - JWT_CLOCK_DRIFT,
        "exp": issued + JWT_LIFETIME,
        "iss": str(app_id),
    }
    signing_input = f"{_b64url_json(header)}.{_b64url_json(payload)}"
    signature = key.sign(signing_input.encode('ascii'), padding.PKCS1v15(), hashes.SHA256())
    return f"{signing_input}.{_b64url(signature)}"


def _parse_expiry(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class StaticCredentials:
    """A fixed token that never needs renewing"""

    def __init__(self, credentials: RemoteCredentials):
        self.credentials = credentials

    async def get(self) -> RemoteCredentials:
        return self.credentials


class GitHubAppCredentials:
    """
    Installation tokens of a GitHub App installed on one repository.

    The installation is looked up once. A new token is requested whenever
    the current one is missing or about to expire.
    """

    def __init__(
        self,
        http: HttpClient,
        app_id: str,
        installation_repo: str,
        private_key: rsa.RSAPrivateKey,
        api_url: str = "https://api.github.com"
    ):
        self.http = http
        self.app_id = app_id
        self.installation_repo = installation_repo
        self.private_key = private_key
        self.api_url = api_url.rstrip("/")
        self._installation_id: Optional[int] = None
        self._current: Optional[RemoteCredentials] = None
        self.logger = logging.getLogger(__name__)

    def _app_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {app_jwt(self.app_id, self.private_key)}",
            "Accept": GITHUB_ACCEPT,
        }

    async def installation_id(self) -> int:
        if self._installation_id is None:
            url = f"{self.api_url}/repos/{self.installation_repo}/installation"
            data = await self.http.request_json("GET", url, self._app_headers())
            try:
                self._installation_id = int(data["id"])
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"GitHub App {self.app_id} is not installed on {self.installation_repo}"
                ) from e
        return self._installation_id

    async def _request_token(self) -> RemoteCredentials:
        installation = await self.installation_id()
        url = f"{self.api_url}/app/installations/{installation}/access_tokens"
        data = await self.http.request_json("POST", url, self._app_headers())
        if not isinstance(data, dict) or not data.get("token"):
            raise ConfigurationError(f"GitHub returned no token for installation {installation}")
        expires_at = _parse_expiry(data.get("expires_at"))
        self.logger.info(f"Obtained installation token for {self.installation_repo}, expires {expires_at}")
        return RemoteCredentials("x-access-token", data["token"], expires_at)

    async def get(self) -> RemoteCredentials:
        """
        Current installation token, renewed if it expires within a minute.

        Raises:
            DownloadError: If the GitHub API cannot be reached
            ConfigurationError: If the app is not installed or returns no token
        """
        if self._current is None or self._current.expires_within(REFRESH_MARGIN):
            self._current = await self._request_token()
        return self._current


def resolve_credentials(
    config: CredentialsConfig,
    http: HttpClient,
    environ: Optional[Mapping[str, str]] = None
):
    """
    Pick the credential source configured for the remote.

    Returns:
        An object with an async ``get()`` returning RemoteCredentials, or
        None when the remote is accessed anonymously

    Raises:
        ConfigurationError: If a GitHub App is requested without its key
    """
    environ = os.environ if environ is None else environ

    if config.github_installation_repo:
        if not config.github_app_id:
            raise ConfigurationError("A GitHub installation repository requires a GitHub App id")
        pem = environ.get(config.github_app_key_env)
        if not pem:
            raise ConfigurationError(
                f"GitHub App authentication requires the {config.github_app_key_env} environment variable"
            )
        return GitHubAppCredentials(
            http,
            config.github_app_id,
            config.github_installation_repo,
            load_private_key(pem),
            config.github_api_url,
        )

    token = config.token or environ.get(config.token_env)
    if token:
        return StaticCredentials(RemoteCredentials(config.username, token))
    return None
