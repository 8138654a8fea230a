from eth_typing import URI

from parity_contracts.rpc.eth_namespace import Eth
from parity_contracts.rpc.transport import ProviderTransport, Transport
from parity_contracts.rpc.web3_namespace import Web3


class Api:
    """All namespaces of a node, sharing one transport."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self.web3 = Web3(transport)
        self.eth = Eth(transport)

    @classmethod
    def from_uri(cls, uri: URI, timeout: int = 60) -> "Api":
        return cls(ProviderTransport.from_uri(uri, timeout=timeout))
