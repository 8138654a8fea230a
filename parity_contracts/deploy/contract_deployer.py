import asyncio
from logging import getLogger
from typing import Any, Dict, List, Mapping, Optional

from eth_abi import encode
from eth_typing import ChecksumAddress, HexStr
from eth_utils import encode_hex, keccak, to_checksum_address

from parity_contracts.constants import (
    CONTRACT_WALLET,
    CONTRACT_WALLET_LIBRARY,
    LIBRARY_WALLET_LINK_KEY,
    WALLET_CONSTRUCTOR_ARGUMENT_TYPES,
)
from parity_contracts.contract_manager import ContractManager, contracts_precompiled_path
from parity_contracts.rpc.api import Api
from parity_contracts.utils.formatting import in_hex
from parity_contracts.utils.linking import AddressLike, IncompleteLinkage, is_fully_linked
from parity_contracts.utils.type_aliases import TransactionHash

LOG = getLogger(__name__)


class DigestMismatch(RuntimeError):
    """The node hashed the bytecode to something other than the local digest."""


class DeploymentFailed(RuntimeError):
    """The deployment transaction was mined but reverted."""


def encode_wallet_arguments(owners: List[str], required: int, daylimit: int) -> HexStr:
    """ABI encoded constructor arguments of the Wallet contract."""
    return HexStr(
        encode_hex(
            encode(
                WALLET_CONSTRUCTOR_ARGUMENT_TYPES,
                [[to_checksum_address(owner) for owner in owners], required, daylimit],
            )
        )
    )


class ContractDeployer:
    """Links the precompiled templates and sends them to a node.

    The node signs the deployment transactions, so `sender` must be an
    account the node manages.
    """

    def __init__(
        self,
        api: Api,
        sender: str,
        contract_manager: Optional[ContractManager] = None,
        gas_limit: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> None:
        self.api = api
        self.sender = to_checksum_address(sender)
        self.contract_manager = contract_manager or ContractManager(contracts_precompiled_path())
        self.gas_limit = gas_limit
        self.gas_price = gas_price

        # Slots are located through the link references, make sure they are right
        self.contract_manager.verify_link_references()

    async def verify_digest(self, data: HexStr) -> HexStr:
        """Ask the node for the keccak of `data` and compare it with ours."""
        local_digest = encode_hex(keccak(hexstr=data))
        remote_digest = await self.api.web3.sha3(data)
        if str(remote_digest).lower() != local_digest:
            raise DigestMismatch(f"Node computed digest {remote_digest}, expected {local_digest}")
        LOG.debug(f"Digest {local_digest} confirmed by the node")
        return HexStr(local_digest)

    def deployment_data(
        self,
        contract_name: str,
        libraries: Optional[Mapping[str, AddressLike]] = None,
        constructor_data: Optional[str] = None,
    ) -> HexStr:
        """ Linked bytecode followed by the encoded constructor arguments. """
        bytecode = self.contract_manager.link_contract(contract_name, libraries)
        if not is_fully_linked(bytecode):
            raise IncompleteLinkage(f"{contract_name} still contains placeholders")
        if constructor_data:
            return HexStr(in_hex(bytecode) + in_hex(constructor_data)[2:])
        return in_hex(bytecode)

    async def deploy(
        self,
        contract_name: str,
        libraries: Optional[Mapping[str, AddressLike]] = None,
        constructor_data: Optional[str] = None,
        verify: bool = True,
    ) -> TransactionHash:
        data = self.deployment_data(contract_name, libraries, constructor_data)
        if verify:
            await self.verify_digest(data)

        transaction: Dict[str, Any] = {"from": self.sender, "data": data}
        if self.gas_limit is not None:
            transaction["gas"] = self.gas_limit
        if self.gas_price is not None:
            transaction["gasPrice"] = self.gas_price

        txhash = await self.api.eth.send_transaction(transaction)
        LOG.debug(
            f"Deploying {contract_name} txHash={txhash}, "
            f"contracts version {self.contract_manager.contracts_version}"
        )
        return TransactionHash(txhash)

    async def wait_for_receipt(
        self, txhash: TransactionHash, timeout: float = 180, poll_interval: float = 1
    ) -> Dict[str, Any]:
        """ Poll for the receipt until it shows up or `timeout` seconds pass.

        Raises DeploymentFailed if the transaction reverted.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            receipt = await self.api.eth.get_transaction_receipt(txhash)
            if receipt is not None:
                break
            if loop.time() >= deadline:
                raise TimeoutError(f"No receipt for {txhash} after {timeout}s")
            await asyncio.sleep(poll_interval)

        # Receipts from before Byzantium carry no status
        status = receipt.get("status")
        if status is not None and int(status, 16) == 0:
            raise DeploymentFailed(f"Status 0 indicates failure of {txhash}")
        return receipt

    async def deploy_and_wait(
        self,
        contract_name: str,
        libraries: Optional[Mapping[str, AddressLike]] = None,
        constructor_data: Optional[str] = None,
        verify: bool = True,
        timeout: float = 180,
    ) -> ChecksumAddress:
        txhash = await self.deploy(
            contract_name, libraries=libraries, constructor_data=constructor_data, verify=verify
        )
        receipt = await self.wait_for_receipt(txhash, timeout=timeout)
        if not receipt.get("contractAddress"):
            raise DeploymentFailed(f"Receipt of {txhash} carries no contract address")
        address = to_checksum_address(receipt["contractAddress"])
        LOG.info(
            "{0} address: {1}. Gas used: {2}".format(
                contract_name, address, int(receipt.get("gasUsed", "0x0"), 16)
            )
        )
        return address

    async def deploy_wallet_with_library(
        self,
        owners: List[str],
        required: int,
        daylimit: int,
        wallet_library_address: Optional[AddressLike] = None,
        verify: bool = True,
        timeout: float = 180,
    ) -> Dict[str, ChecksumAddress]:
        """ Deploy the wallet, together with its library unless one is given

        Returns a dict of contract_name:address.
        """
        deployed: Dict[str, ChecksumAddress] = {}
        if wallet_library_address is None:
            deployed[CONTRACT_WALLET_LIBRARY] = await self.deploy_and_wait(
                CONTRACT_WALLET_LIBRARY, verify=verify, timeout=timeout
            )
        else:
            deployed[CONTRACT_WALLET_LIBRARY] = to_checksum_address(wallet_library_address)
            LOG.info(f"Reusing {CONTRACT_WALLET_LIBRARY} at {deployed[CONTRACT_WALLET_LIBRARY]}")

        deployed[CONTRACT_WALLET] = await self.deploy_and_wait(
            CONTRACT_WALLET,
            libraries={LIBRARY_WALLET_LINK_KEY: deployed[CONTRACT_WALLET_LIBRARY]},
            constructor_data=encode_wallet_arguments(owners, required, daylimit),
            verify=verify,
            timeout=timeout,
        )
        return deployed
