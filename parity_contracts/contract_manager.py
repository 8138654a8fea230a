"""ContractManager knows the precompiled bytecode templates and how to link them."""
import json
from json import JSONDecodeError
from logging import getLogger
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from eth_typing import HexStr
from mypy_extensions import TypedDict

from parity_contracts.constants import PRECOMPILED_DATA_FIELDS, PlaceholderStyle
from parity_contracts.utils.linking import (
    AddressLike,
    LinkReferences,
    MalformedTemplate,
    find_link_references,
    get_placeholder_for_library_identifier,
    link_bytecode,
)
from parity_contracts.utils.versions import placeholder_style_for_compiler

_BASE = Path(__file__).parent

LOG = getLogger(__name__)


# Classes for static type checking of the precompiled contracts dictionary.


CompiledContract = TypedDict(
    "CompiledContract",
    {"bin": str, "registry_key": Optional[str], "link_references": LinkReferences},
)


class ContractManagerLoadError(RuntimeError):
    """Failure in loading contracts.json."""


class ContractManager:
    """ ContractManager holds the precompiled templates of one compiler run

    Provides access to the bytecode and links it against library addresses.
    """

    def __init__(self, path: Path) -> None:
        """Params:
            path: path to a precompiled contract JSON file,
        """
        try:
            with path.open() as precompiled_file:
                precompiled_content = json.load(precompiled_file)
        except (JSONDecodeError, UnicodeDecodeError) as ex:
            raise ContractManagerLoadError(f"Can't load precompiled smart contracts: {ex}") from ex
        try:
            self.contracts: Dict[str, CompiledContract] = precompiled_content["contracts"]
            if not self.contracts:
                raise ContractManagerLoadError(
                    f"Cannot find precompiled contracts data in the JSON file {path}."
                )
            self.contracts_version: str = precompiled_content["contracts_version"]
            self.compiler_version: Optional[str] = precompiled_content.get("compiler_version")
            self.source_url: Optional[str] = precompiled_content.get("source_url")
            for name, contract in self.contracts.items():
                missing = [field for field in PRECOMPILED_DATA_FIELDS if field not in contract]
                if missing:
                    raise ContractManagerLoadError(
                        f"Precompiled contract {name} lacks {', '.join(missing)}"
                    )
        except (KeyError, TypeError, AttributeError) as ex:
            raise ContractManagerLoadError(
                f"Precompiled contracts json has unexpected format: {ex}"
            ) from ex

    @property
    def placeholder_style(self) -> PlaceholderStyle:
        return placeholder_style_for_compiler(self.compiler_version)

    def get_contract(self, contract_name: str) -> CompiledContract:
        """ Return BIN and link references of the given contract. """
        assert self.contracts, "ContractManager should have contracts compiled"
        try:
            return self.contracts[contract_name]
        except KeyError:
            raise KeyError(
                f"contracts_version {self.contracts_version} does not have {contract_name}"
            )

    def has_contract(self, contract_name: str) -> bool:
        return contract_name in self.contracts

    def get_bytecode(self, contract_name: str) -> HexStr:
        """ Returns the unlinked template with 0x prefix. """
        return HexStr("0x" + self.get_contract(contract_name)["bin"])

    def get_link_references(self, contract_name: str) -> LinkReferences:
        return self.get_contract(contract_name)["link_references"]

    def get_libraries(self, contract_name: str) -> List[str]:
        """ Names of the libraries the contract has to be linked against. """
        return sorted(self.get_link_references(contract_name))

    def get_registry_key(self, contract_name: str) -> Optional[str]:
        return self.get_contract(contract_name)["registry_key"]

    def link_contract(
        self, contract_name: str, libraries: Optional[Mapping[str, AddressLike]] = None
    ) -> HexStr:
        """ Returns deployable bytecode with 0x prefix.

        The slots are taken from the shipped link references, the bytecode is
        never searched for placeholders.
        """
        linked = link_bytecode(
            self.get_bytecode(contract_name),
            libraries or {},
            link_references=self.get_link_references(contract_name),
        )
        LOG.debug(f"Linked {contract_name} against {', '.join(libraries or {}) or 'nothing'}")
        return HexStr(linked)

    def verify_link_references(self) -> None:
        """ Check that the shipped link references describe every placeholder

        Raises MalformedTemplate if a placeholder is undocumented, documented at
        the wrong offset or written in a style the compiler does not emit.
        """
        for name, contract in self.contracts.items():
            declared = contract["link_references"]
            expected_placeholders = {
                get_placeholder_for_library_identifier(symbol, self.placeholder_style): symbol
                for symbol in declared
            }
            code = contract["bin"]
            found: LinkReferences = {}
            for label, references in find_link_references(code).items():
                for reference in references:
                    position = 2 * reference["start"]
                    placeholder = code[position : position + 2 * reference["length"]]
                    symbol = expected_placeholders.get(placeholder)
                    if symbol is None:
                        raise MalformedTemplate(
                            f"{name} has an undocumented placeholder {label} "
                            f"at byte {reference['start']}"
                        )
                    found.setdefault(symbol, []).append(reference)
            for symbol, references in declared.items():
                if sorted(r["start"] for r in references) != sorted(
                    r["start"] for r in found.get(symbol, [])
                ):
                    raise MalformedTemplate(
                        f"Link references of {symbol} in {name} do not match the bytecode"
                    )
        LOG.info(f"Link references of contracts_version {self.contracts_version} verified")


def contracts_data_path(version: Optional[str] = None) -> Path:
    """Returns the precompiled data directory for a version."""
    if version is None:
        return _BASE.joinpath("data")
    return _BASE.joinpath(f"data_{version}")


def contracts_precompiled_path(version: Optional[str] = None) -> Path:
    """Returns the path of JSON file where the bytecode can be found."""
    data_path = contracts_data_path(version)
    return data_path.joinpath("contracts.json")
