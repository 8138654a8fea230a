from parity_contracts.contract_manager import ContractManager, contracts_precompiled_path
from parity_contracts.utils.linking import (
    IncompleteLinkage,
    InvalidAddress,
    LinkingError,
    MalformedTemplate,
    UnresolvedSymbol,
    link_bytecode,
)

__all__ = [
    "ContractManager",
    "IncompleteLinkage",
    "InvalidAddress",
    "LinkingError",
    "MalformedTemplate",
    "UnresolvedSymbol",
    "contracts_precompiled_path",
    "link_bytecode",
]
