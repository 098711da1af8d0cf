"""Bearer credential lifecycle backed by a single blob."""

from __future__ import annotations

import logging
from datetime import datetime
from threading import Lock
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from app.schemas import Credential
from errors import AuthError
from storage.mock_blob import CREDENTIAL_BLOB_NAME, MockBlobContainer
from timeutil import now_utc

logger = logging.getLogger(__name__)


class TokenStore:
    """Resolves the vendor credential, issuing a new one when asked to or when none exists.

    The persisted credential is returned as-is; expiry is normally discovered
    when a vendor call fails. Setting ``proactive_expiry`` additionally treats
    a credential older than ``expires_in`` as absent.
    """

    def __init__(
        self,
        container: MockBlobContainer,
        http_client: httpx.Client,
        auth_url: str,
        client_id: str,
        client_secret: str,
        authorization_code: str,
        proactive_expiry: bool = False,
        clock: Callable[[], datetime] = now_utc,
        blob_name: str = CREDENTIAL_BLOB_NAME,
    ) -> None:
        self.container = container
        self.http_client = http_client
        self.auth_url = auth_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.authorization_code = authorization_code
        self.proactive_expiry = proactive_expiry
        self.blob_name = blob_name
        self._clock = clock
        self._lock = Lock()

    def resolve(self, force_refresh: bool = False) -> Credential:
        with self._lock:
            if not force_refresh:
                credential = self._load()
                if credential is not None:
                    if self.proactive_expiry and credential.is_expired(self._clock()):
                        logger.info("Persisted credential has expired, requesting a new one")
                    else:
                        logger.debug("Using existing authentication token")
                        return credential

            logger.info("Obtaining authentication token")
            credential = self._request_token()
            self.container.upload_text(self.blob_name, credential.model_dump_json())
            return credential

    def _load(self) -> Optional[Credential]:
        raw = self.container.download_text(self.blob_name)
        if not raw:
            return None
        try:
            return Credential.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable persisted credential: %s", exc)
            return None

    def _request_token(self) -> Credential:
        form = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "code": self.authorization_code,
        }
        try:
            response = self.http_client.post(self.auth_url, data=form)
        except httpx.HTTPError as exc:
            raise AuthError(f"Token endpoint unreachable: {exc}") from exc

        if response.is_error:
            raise AuthError(
                f"Token endpoint rejected the request with status {response.status_code}."
            )
        if not response.content:
            raise AuthError("Token endpoint returned no content.")

        try:
            payload = response.json()
            credential = Credential.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            raise AuthError(f"Token endpoint returned an unusable credential: {exc}") from exc

        if credential.obtained_at is None:
            credential = credential.model_copy(update={"obtained_at": self._clock()})
        return credential
