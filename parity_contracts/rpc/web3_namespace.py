from parity_contracts.constants import RPC_WEB3_CLIENT_VERSION, RPC_WEB3_SHA3
from parity_contracts.rpc.namespace import Namespace, rpc_method
from parity_contracts.utils.formatting import in_hex


class Web3(Namespace):
    # Identifier of the node implementation, passed through verbatim
    client_version = rpc_method(RPC_WEB3_CLIENT_VERSION)

    # Keccak-256 of the given bytes, computed by the node
    sha3 = rpc_method(RPC_WEB3_SHA3, in_hex)
