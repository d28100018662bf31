"""REST gateway for the token storage API.

Endpoints:
    GET    /api/tokens          -> {success, tokens}
    POST   /api/tokens          -> {success, token}
    PUT    /api/tokens/{id}     -> {success, token}
    DELETE /api/tokens/{id}     -> {success}
    POST   /api/auth/logout

Every request carries the session credential as a bearer token.
"""

from typing import Any

import httpx
import structlog

from tokenbook.core.gateway.base import TokenGateway
from tokenbook.core.token import Token, TokenDraft
from tokenbook.exceptions import (
    AuthenticationError,
    AuthorizationError,
    GatewayError,
    TokenNotFoundError,
    gateway_error_from_message,
)

log = structlog.get_logger(__name__)


class HttpGateway(TokenGateway):
    TOKENS_PATH = "/api/tokens"
    LOGOUT_PATH = "/api/auth/logout"

    def __init__(
        self,
        base_url: str,
        credential: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {credential}",
            },
        )

    @property
    def gateway_type(self) -> str:
        return "http"

    def list_tokens(self) -> list[Token]:
        data = self._request("GET", self.TOKENS_PATH)
        return [Token.model_validate(item) for item in data.get("tokens") or []]

    def create_token(self, draft: TokenDraft) -> Token:
        data = self._request("POST", self.TOKENS_PATH, json=draft.to_payload())
        return self._token_from(data)

    def update_token(self, token_id: str, draft: TokenDraft) -> Token:
        data = self._request(
            "PUT",
            f"{self.TOKENS_PATH}/{token_id}",
            json=draft.to_payload(),
            token_id=token_id,
        )
        return self._token_from(data)

    def delete_token(self, token_id: str) -> None:
        self._request("DELETE", f"{self.TOKENS_PATH}/{token_id}", token_id=token_id)

    def logout(self) -> None:
        try:
            self._client.post(self.LOGOUT_PATH)
        except httpx.HTTPError as e:
            log.debug("logout_request_failed", error=str(e))

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        token_id: str | None = None,
    ) -> dict[str, Any]:
        log.debug("gateway_request", method=method, path=path)
        try:
            response = self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise GatewayError(f"Network error: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError()
        if response.status_code == 403:
            raise AuthorizationError()
        if response.status_code == 404 and token_id is not None:
            raise TokenNotFoundError(token_id)

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(
                f"Invalid response from server (HTTP {response.status_code})",
                response.status_code,
            ) from e

        if not isinstance(data, dict) or not data.get("success"):
            message = "Request failed"
            if isinstance(data, dict) and data.get("message"):
                message = str(data["message"])
            raise gateway_error_from_message(message, response.status_code)

        return data

    @staticmethod
    def _token_from(data: dict[str, Any]) -> Token:
        if not data.get("token"):
            raise GatewayError("Server response did not include the token")
        return Token.model_validate(data["token"])
