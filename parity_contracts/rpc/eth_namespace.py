"""The part of the `eth` API needed to submit and confirm deployments."""
from eth_utils import to_int

from parity_contracts.constants import (
    RPC_ETH_CHAIN_ID,
    RPC_ETH_GET_CODE,
    RPC_ETH_GET_TRANSACTION_RECEIPT,
    RPC_ETH_SEND_TRANSACTION,
)
from parity_contracts.rpc.namespace import Namespace, rpc_method
from parity_contracts.utils.formatting import in_address, in_block, in_hex, in_transaction


def out_number(value: str) -> int:
    return to_int(hexstr=value)


class Eth(Namespace):
    chain_id = rpc_method(RPC_ETH_CHAIN_ID, decoder=out_number)
    get_code = rpc_method(RPC_ETH_GET_CODE, in_address, in_block, optional=1)
    get_transaction_receipt = rpc_method(RPC_ETH_GET_TRANSACTION_RECEIPT, in_hex)
    send_transaction = rpc_method(RPC_ETH_SEND_TRANSACTION, in_transaction)
