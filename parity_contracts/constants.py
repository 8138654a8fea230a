from enum import Enum

CONTRACTS_VERSION = "0.1.0"

PRECOMPILED_DATA_FIELDS = ["bin", "registry_key", "link_references"]

# Contract names
CONTRACT_WALLET = "Wallet"
CONTRACT_WALLET_LIBRARY = "WalletLibrary"
CONTRACT_FULL_WALLET = "FullWallet"

# Name under which the library is published in the on-chain registry
WALLET_LIBRARY_REGISTRY_KEY = "walletLibrary"

# Link symbol of the wallet library inside the Wallet template
LIBRARY_WALLET_LINK_KEY = "WalletLibrary"

# Wallet(address[] _owners, uint _required, uint _daylimit)
WALLET_CONSTRUCTOR_ARGUMENT_TYPES = ["address[]", "uint256", "uint256"]

# Slot geometry of an unlinked address placeholder
ADDRESS_LENGTH = 20
SLOT_WIDTH = 2 * ADDRESS_LENGTH
PLACEHOLDER_FILLER = "_"
HASHED_PLACEHOLDER_MARKER = "$"

# Remote method names
RPC_WEB3_CLIENT_VERSION = "web3_clientVersion"
RPC_WEB3_SHA3 = "web3_sha3"
RPC_ETH_CHAIN_ID = "eth_chainId"
RPC_ETH_GET_CODE = "eth_getCode"
RPC_ETH_GET_TRANSACTION_RECEIPT = "eth_getTransactionReceipt"
RPC_ETH_SEND_TRANSACTION = "eth_sendTransaction"

DEFAULT_RPC_PROVIDER = "http://127.0.0.1:8545"


class PlaceholderStyle(Enum):
    """How a compiler writes an unresolved library address into bytecode"""

    # "__" + name, right-padded with "_" to the slot width (solc < 0.5.0)
    LEGACY = "legacy"
    # "__$" + first 34 hex digits of keccak256(name) + "$__" (solc >= 0.5.0)
    HASHED = "hashed"
