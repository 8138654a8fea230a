from logging import getLogger
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Tuple

from parity_contracts.rpc.transport import Transport
from parity_contracts.utils.formatting import InvalidInput

LOG = getLogger(__name__)

Formatter = Callable[[Any], Any]


class RpcMethod(NamedTuple):
    """A remote method: its name, one formatter per positional argument and
    an optional decoder applied to the result."""

    name: str
    formatters: Tuple[Formatter, ...] = ()
    decoder: Optional[Callable[[Any], Any]] = None
    # Trailing arguments that may be left out
    optional: int = 0


def rpc_method(
    name: str,
    *formatters: Formatter,
    decoder: Optional[Callable[[Any], Any]] = None,
    optional: int = 0,
) -> Callable[..., Awaitable[Any]]:
    """Declares a namespace operation forwarding to the remote method `name`."""
    method = RpcMethod(name=name, formatters=formatters, decoder=decoder, optional=optional)

    async def call(self: "Namespace", *args: Any) -> Any:
        return await self.request(method, *args)

    call.__doc__ = f"Calls `{name}`."
    call.rpc_method = method  # type: ignore
    return call


class Namespace:
    """Base of the API groups. Holds nothing but the transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def format_params(self, method: RpcMethod, *args: Any) -> list:
        required = len(method.formatters) - method.optional
        if not required <= len(args) <= len(method.formatters):
            raise InvalidInput(
                f"{method.name} takes {len(method.formatters)} argument(s), got {len(args)}"
            )
        return [formatter(arg) for formatter, arg in zip(method.formatters, args)]

    async def request(self, method: RpcMethod, *args: Any) -> Any:
        params = self.format_params(method, *args)
        LOG.debug(f"Calling {method.name}")
        result = await self._transport.execute(method.name, params)
        if method.decoder is None or result is None:
            return result
        return method.decoder(result)

    @classmethod
    def methods(cls) -> Tuple[RpcMethod, ...]:
        return tuple(
            getattr(attribute, "rpc_method")
            for attribute in vars(cls).values()
            if hasattr(attribute, "rpc_method")
        )
