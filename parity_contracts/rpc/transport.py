"""The transport capability the RPC namespaces send their requests through."""
from abc import ABC, abstractmethod
from logging import getLogger
from typing import Any, Optional, Sequence

from eth_typing import URI
from web3 import AsyncHTTPProvider
from web3.providers.async_base import AsyncBaseProvider
from web3.types import RPCEndpoint

LOG = getLogger(__name__)


class TransportError(Exception):
    """The request could not be delivered, or the node answered with an error.

    `code` and `data` are those of the JSON-RPC error object, if there was one.
    """

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code {self.code})"


class Transport(ABC):
    """Delivers one JSON-RPC call and returns its result.

    Framing, request correlation, retries and timeouts are left to the
    implementation. Failures must be raised as TransportError.
    """

    @abstractmethod
    async def execute(self, method: str, params: Sequence[Any]) -> Any:
        ...


class ProviderTransport(Transport):
    """Runs calls through a web3.py async provider."""

    def __init__(self, provider: AsyncBaseProvider) -> None:
        self.provider = provider

    @classmethod
    def from_uri(cls, uri: URI, timeout: int = 60) -> "ProviderTransport":
        return cls(AsyncHTTPProvider(uri, request_kwargs={"timeout": timeout}))

    async def execute(self, method: str, params: Sequence[Any]) -> Any:
        LOG.debug(f"Sending {method} with {len(params)} parameter(s) to {self.provider}")
        try:
            response = await self.provider.make_request(RPCEndpoint(method), list(params))
        except TransportError:
            raise
        except Exception as ex:
            raise TransportError(f"{method} could not be delivered: {ex}") from ex

        if "error" in response:
            error = response["error"]
            if isinstance(error, dict):
                raise TransportError(
                    error.get("message", f"{method} failed"),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise TransportError(str(error))
        if "result" not in response:
            raise TransportError(f"Response to {method} has neither a result nor an error")
        return response["result"]

    def __repr__(self) -> str:
        return f"<ProviderTransport {self.provider}>"
