from parity_contracts.rpc.api import Api
from parity_contracts.rpc.eth_namespace import Eth
from parity_contracts.rpc.namespace import Namespace, RpcMethod, rpc_method
from parity_contracts.rpc.transport import ProviderTransport, Transport, TransportError
from parity_contracts.rpc.web3_namespace import Web3

__all__ = [
    "Api",
    "Eth",
    "Namespace",
    "ProviderTransport",
    "RpcMethod",
    "Transport",
    "TransportError",
    "Web3",
    "rpc_method",
]
