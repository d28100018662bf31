"""Abstract base class for remote token gateways."""

from abc import ABC, abstractmethod

from tokenbook.core.token import Token, TokenDraft


class TokenGateway(ABC):
    """Interface to the service that actually stores tokens.

    Implementations raise AuthenticationError, AuthorizationError,
    TokenNotFoundError, DuplicateTokenError or GatewayError on failure and
    return fresh Token records on success. Update is a full-record replace,
    never a partial patch.

    Use cases:
    - HttpGateway: the REST backend shared by the team
    - LocalGateway: offline JSON file, handy for demos and tests
    """

    @property
    @abstractmethod
    def gateway_type(self) -> str:
        """Return the gateway type identifier (e.g., 'http', 'local')."""
        ...

    @abstractmethod
    def list_tokens(self) -> list[Token]:
        ...

    @abstractmethod
    def create_token(self, draft: TokenDraft) -> Token:
        """Create a token; the gateway assigns created_at when it is None."""
        ...

    @abstractmethod
    def update_token(self, token_id: str, draft: TokenDraft) -> Token:
        ...

    @abstractmethod
    def delete_token(self, token_id: str) -> None:
        ...

    def logout(self) -> None:
        """Tell the gateway the session is over. Best effort."""
        return None

    def close(self) -> None:
        return None
