"""
A simple Python script to link and deploy the precompiled contracts.
"""
import asyncio
import functools
import json
import logging
from logging import getLogger
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import click
from click import Context, IntRange, Option, Parameter
from eth_typing import URI
from eth_typing.evm import ChecksumAddress
from eth_utils import is_address, to_checksum_address
from eth_utils.units import units

from parity_contracts.constants import DEFAULT_RPC_PROVIDER
from parity_contracts.contract_manager import ContractManager, contracts_precompiled_path
from parity_contracts.deploy.contract_deployer import (
    ContractDeployer,
    DeploymentFailed,
    DigestMismatch,
    encode_wallet_arguments,
)
from parity_contracts.rpc.api import Api
from parity_contracts.rpc.transport import TransportError
from parity_contracts.utils.file_ops import load_json_from_path, store_json_to_path
from parity_contracts.utils.formatting import InvalidInput
from parity_contracts.utils.linking import LinkingError

LOG = getLogger(__name__)


def validate_address(
    _: Context, _param: Union[Option, Parameter], value: Optional[str]
) -> Optional[ChecksumAddress]:
    if not value:
        return None
    if not is_address(value):
        raise click.BadParameter("must be a valid ethereum address")
    return to_checksum_address(value)


def validate_addresses(
    ctx: Context, param: Union[Option, Parameter], value: Tuple[str, ...]
) -> List[ChecksumAddress]:
    return [validate_address(ctx, param, address) for address in value]  # type: ignore


def validate_libraries(
    _: Context, _param: Union[Option, Parameter], value: Tuple[str, ...]
) -> Dict[str, ChecksumAddress]:
    """ Parses repeated NAME=ADDRESS options into a dict. """
    libraries: Dict[str, ChecksumAddress] = {}
    for entry in value:
        name, separator, address = entry.partition("=")
        if not separator or not name:
            raise click.BadParameter(f"{entry} is not of the form NAME=ADDRESS")
        if not is_address(address):
            raise click.BadParameter(f"{address} is not a valid ethereum address")
        libraries[name] = to_checksum_address(address)
    return libraries


def load_libraries_file(path: Optional[str]) -> Dict[str, ChecksumAddress]:
    """ Reads library addresses from a file written by `deploy --save-info`. """
    if not path:
        return {}
    try:
        content = load_json_from_path(Path(path))
    except ValueError as ex:
        raise click.BadParameter(str(ex)) from ex
    if not content or "contracts" not in content:
        raise click.BadParameter(f"{path} does not contain deployment data")
    return {
        name: to_checksum_address(info["address"]) for name, info in content["contracts"].items()
    }


def rpc_options(func: Callable) -> Callable:
    """A decorator that combines commonly appearing @click.option decorators."""

    @click.option(
        "--rpc-provider", default=DEFAULT_RPC_PROVIDER, help="Address of the Ethereum RPC provider"
    )
    @click.option("--timeout", default=60, type=IntRange(min=1), help="RPC timeout in s.")
    @functools.wraps(func)
    def wrapper(*args: List, **kwargs: Dict) -> Any:
        return func(*args, **kwargs)

    return wrapper


def deploy_options(func: Callable) -> Callable:
    @click.option("--sender", required=True, callback=validate_address, help="Deploying account")
    @click.option("--wait", default=300, help="Max tx wait time in s.")
    @click.option("--gas-price", default=None, type=IntRange(min=1), help="Gas price in gwei")
    @click.option("--gas-limit", default=None, type=IntRange(min=21000))
    @click.option(
        "--verify/--no-verify", default=True, help="Have the node hash the bytecode first."
    )
    @click.option(
        "--save-info",
        default=None,
        type=click.Path(dir_okay=False),
        help="Write the deployed addresses to this file.",
    )
    @functools.wraps(func)
    def wrapper(*args: List, **kwargs: Dict) -> Any:
        return func(*args, **kwargs)

    return wrapper


def setup_logging() -> None:
    logging.basicConfig(level=logging.DEBUG)
    logging.getLogger("web3").setLevel(logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.INFO)
    logging.getLogger("aiohttp").setLevel(logging.INFO)


def setup_deployer(
    rpc_provider: URI,
    timeout: int,
    sender: ChecksumAddress,
    gas_price: Optional[int],
    gas_limit: Optional[int],
) -> ContractDeployer:
    setup_logging()
    api = Api.from_uri(rpc_provider, timeout=timeout)
    return ContractDeployer(
        api=api,
        sender=sender,
        gas_limit=gas_limit,
        gas_price=gas_price * int(units["gwei"]) if gas_price else None,
    )


def run(coroutine: Any) -> Any:
    """ Runs a coroutine, reporting node and linking failures as CLI errors. """
    try:
        return asyncio.run(coroutine)
    except (
        LinkingError,
        InvalidInput,
        TransportError,
        DigestMismatch,
        DeploymentFailed,
        TimeoutError,
    ) as ex:
        raise click.ClickException(str(ex)) from ex


async def _save_info(
    deployer: ContractDeployer, path: str, deployed: Dict[str, ChecksumAddress]
) -> None:
    try:
        content = load_json_from_path(Path(path)) or {}
    except ValueError as ex:
        raise click.ClickException(
            f"Cannot save deployment info: {ex}. Deployed: {json.dumps(deployed)}"
        ) from ex
    content["chain_id"] = await deployer.api.eth.chain_id()
    content["contracts_version"] = deployer.contract_manager.contracts_version
    contracts = content.setdefault("contracts", {})
    for name, address in deployed.items():
        contracts[name] = {"address": address}
    store_json_to_path(Path(path), content)
    LOG.info(f"Deployment info written to {path}")


@click.group()
def main() -> int:
    pass


@main.command()
@click.argument("contract_name")
@click.option(
    "--library",
    "libraries",
    multiple=True,
    callback=validate_libraries,
    help="Library address as NAME=ADDRESS, can be repeated.",
)
@click.option(
    "--libraries-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Deployment info file to take library addresses from.",
)
def link(
    contract_name: str, libraries: Dict[str, ChecksumAddress], libraries_file: Optional[str]
) -> None:
    """Print the bytecode of CONTRACT_NAME linked against the given libraries."""
    manager = ContractManager(contracts_precompiled_path())
    if not manager.has_contract(contract_name):
        raise click.BadParameter(f"Unknown contract {contract_name}")
    resolutions = {**load_libraries_file(libraries_file), **libraries}
    try:
        click.echo(manager.link_contract(contract_name, resolutions))
    except LinkingError as ex:
        raise click.ClickException(str(ex)) from ex


@main.command()
@click.argument("contract_name")
def references(contract_name: str) -> None:
    """Print the library slots of CONTRACT_NAME as byte offsets."""
    manager = ContractManager(contracts_precompiled_path())
    if not manager.has_contract(contract_name):
        raise click.BadParameter(f"Unknown contract {contract_name}")
    click.echo(json.dumps(manager.get_link_references(contract_name), indent=4))


@main.command("client-version")
@rpc_options
def client_version(rpc_provider: URI, timeout: int) -> None:
    """Print the node's implementation string."""
    api = Api.from_uri(rpc_provider, timeout=timeout)
    click.echo(run(api.web3.client_version()))


@main.command()
@click.argument("data")
@rpc_options
def sha3(data: str, rpc_provider: URI, timeout: int) -> None:
    """Print the keccak of DATA as computed by the node."""
    api = Api.from_uri(rpc_provider, timeout=timeout)
    click.echo(run(api.web3.sha3(data)))


@main.command()
@click.argument("contract_name")
@rpc_options
@deploy_options
@click.option(
    "--library",
    "libraries",
    multiple=True,
    callback=validate_libraries,
    help="Library address as NAME=ADDRESS, can be repeated.",
)
@click.option(
    "--libraries-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Deployment info file to take library addresses from.",
)
@click.option("--constructor-data", default=None, help="ABI encoded constructor arguments.")
def deploy(
    contract_name: str,
    rpc_provider: URI,
    timeout: int,
    sender: ChecksumAddress,
    wait: int,
    gas_price: Optional[int],
    gas_limit: Optional[int],
    verify: bool,
    save_info: Optional[str],
    libraries: Dict[str, ChecksumAddress],
    libraries_file: Optional[str],
    constructor_data: Optional[str],
) -> None:
    """Link CONTRACT_NAME and deploy it."""
    deployer = setup_deployer(rpc_provider, timeout, sender, gas_price, gas_limit)
    if not deployer.contract_manager.has_contract(contract_name):
        raise click.BadParameter(f"Unknown contract {contract_name}")
    resolutions = {**load_libraries_file(libraries_file), **libraries}

    async def _deploy() -> Dict[str, ChecksumAddress]:
        address = await deployer.deploy_and_wait(
            contract_name,
            libraries=resolutions,
            constructor_data=constructor_data,
            verify=verify,
            timeout=wait,
        )
        deployed = {contract_name: address}
        if save_info:
            await _save_info(deployer, save_info, deployed)
        return deployed

    print(json.dumps(run(_deploy()), indent=4))


@main.command()
@rpc_options
@deploy_options
@click.option(
    "--owner",
    "owners",
    multiple=True,
    required=True,
    callback=validate_addresses,
    help="Wallet owner, can be repeated.",
)
@click.option("--required", default=1, type=IntRange(min=1), help="Confirmations needed.")
@click.option("--daylimit", default=0, type=IntRange(min=0), help="Daily limit in wei.")
@click.option(
    "--wallet-library",
    default=None,
    callback=validate_address,
    help="Already deployed WalletLibrary to link against.",
)
def wallet(
    rpc_provider: URI,
    timeout: int,
    sender: ChecksumAddress,
    wait: int,
    gas_price: Optional[int],
    gas_limit: Optional[int],
    verify: bool,
    save_info: Optional[str],
    owners: List[ChecksumAddress],
    required: int,
    daylimit: int,
    wallet_library: Optional[ChecksumAddress],
) -> None:
    """Deploy a Wallet, and its WalletLibrary unless one is given."""
    if required > len(owners):
        raise click.BadParameter(f"--required {required} exceeds the number of owners")
    # Fail on bad owners before anything is sent
    encode_wallet_arguments(owners, required, daylimit)
    deployer = setup_deployer(rpc_provider, timeout, sender, gas_price, gas_limit)

    async def _deploy() -> Dict[str, ChecksumAddress]:
        deployed = await deployer.deploy_wallet_with_library(
            owners=owners,
            required=required,
            daylimit=daylimit,
            wallet_library_address=wallet_library,
            verify=verify,
            timeout=wait,
        )
        if save_info:
            await _save_info(deployer, save_info, deployed)
        return deployed

    print(json.dumps(run(_deploy()), indent=4))


if __name__ == "__main__":
    main()
