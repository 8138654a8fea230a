import pytest
from eth_typing import HexAddress, HexStr
from eth_utils import encode_hex, keccak

from parity_contracts.constants import LIBRARY_WALLET_LINK_KEY, PlaceholderStyle
from parity_contracts.tests.utils.constants import LIBRARY_ADDRESS, OTHER_LIBRARY_ADDRESS
from parity_contracts.tests.utils.mock import fake_bytes
from parity_contracts.utils.linking import (
    IncompleteLinkage,
    InvalidAddress,
    LinkingError,
    MalformedTemplate,
    UnresolvedSymbol,
    find_link_references,
    get_placeholder_for_library_identifier,
    is_fully_linked,
    link_bytecode,
    normalize_library_address,
)

HASHED_LINK_KEY = "contracts/lib/WalletLibrary.sol:WalletLibrary"
LIB_PLACEHOLDER = "__Lib" + "_" * 35
PREFIX = "aa" * 20
SUFFIX = "bb" * 10


def test_solidity_placeholder_calculation() -> None:
    placeholder = get_placeholder_for_library_identifier(HASHED_LINK_KEY)
    assert len(placeholder) == 40
    assert placeholder.startswith("__$") and placeholder.endswith("$__")
    assert placeholder[3:37] == encode_hex(keccak(text=HASHED_LINK_KEY))[2:36]


def test_legacy_placeholder() -> None:
    placeholder = get_placeholder_for_library_identifier(
        LIBRARY_WALLET_LINK_KEY, PlaceholderStyle.LEGACY
    )
    assert placeholder == "__WalletLibrary_________________________"
    assert len(placeholder) == 40


def test_legacy_placeholder_truncates_long_names() -> None:
    placeholder = get_placeholder_for_library_identifier("x" * 50, PlaceholderStyle.LEGACY)
    assert placeholder == "__" + "x" * 36 + "__"


def test_linking() -> None:
    unlinked_bytecode = "73" + get_placeholder_for_library_identifier(HASHED_LINK_KEY) + "63"
    lib_address = HexAddress(HexStr("0x1111111111111111111111111111111111111111"))
    linked_bytecode = link_bytecode(unlinked_bytecode, {HASHED_LINK_KEY: lib_address})

    assert linked_bytecode == "73111111111111111111111111111111111111111163"


def test_link_single_slot() -> None:
    """ A slot between 20 literal bytes and 10 literal bytes """
    template = PREFIX + LIB_PLACEHOLDER + SUFFIX
    linked = link_bytecode(template, {"Lib": LIBRARY_ADDRESS})

    assert linked == PREFIX + "11" * 20 + SUFFIX
    assert len(linked) == len(template)
    assert is_fully_linked(linked)


def test_link_keeps_prefix() -> None:
    linked = link_bytecode("0x" + PREFIX + LIB_PLACEHOLDER, {"Lib": LIBRARY_ADDRESS})
    assert linked == "0x" + PREFIX + "11" * 20


def test_link_lowercases_address() -> None:
    address = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
    assert link_bytecode(LIB_PLACEHOLDER, {"Lib": address}) == address[2:].lower()


def test_link_accepts_raw_bytes() -> None:
    assert link_bytecode(LIB_PLACEHOLDER, {"Lib": fake_bytes(20, "ff")}) == "ff" * 20


def test_all_slots_of_a_symbol_get_the_same_address() -> None:
    template = "60" + LIB_PLACEHOLDER + "61" + LIB_PLACEHOLDER + "62"
    linked = link_bytecode(template, {"Lib": LIBRARY_ADDRESS})
    assert linked == "60" + "11" * 20 + "61" + "11" * 20 + "62"


def test_link_several_symbols() -> None:
    other = get_placeholder_for_library_identifier("Other")
    template = LIB_PLACEHOLDER + "00" + other
    linked = link_bytecode(template, {"Lib": LIBRARY_ADDRESS, "Other": OTHER_LIBRARY_ADDRESS})
    assert linked == "11" * 20 + "00" + "22" * 20


def test_link_without_slots_is_identity() -> None:
    assert link_bytecode("6060604052", {}) == "6060604052"
    assert link_bytecode("", {}) == ""


def test_unused_resolutions_are_ignored() -> None:
    assert link_bytecode(PREFIX, {"Lib": LIBRARY_ADDRESS}) == PREFIX


def test_link_is_deterministic() -> None:
    template = PREFIX + LIB_PLACEHOLDER + SUFFIX
    resolutions = {"Lib": LIBRARY_ADDRESS}
    assert link_bytecode(template, resolutions) == link_bytecode(template, resolutions)
    assert resolutions == {"Lib": LIBRARY_ADDRESS}


def test_unresolved_symbol() -> None:
    with pytest.raises(UnresolvedSymbol) as excinfo:
        link_bytecode(PREFIX + LIB_PLACEHOLDER + SUFFIX, {"Other": LIBRARY_ADDRESS})
    assert excinfo.value.symbols == ["Lib"]
    assert "Lib" in str(excinfo.value)


@pytest.mark.parametrize(
    "address",
    [
        "0x" + "11" * 19,
        "0x" + "11" * 21,
        "0x" + "1" * 39,
        "0x",
        "",
        "not an address",
        fake_bytes(19),
        fake_bytes(32),
        1234,
        None,
    ],
)
def test_invalid_address(address: object) -> None:
    with pytest.raises(InvalidAddress):
        link_bytecode(PREFIX + LIB_PLACEHOLDER, {"Lib": address})  # type: ignore


def test_invalid_address_regardless_of_template() -> None:
    """ Addresses are checked even when the template does not use them """
    with pytest.raises(InvalidAddress):
        link_bytecode("6060", {"Unused": "0x1234"})


def test_odd_length_template() -> None:
    with pytest.raises(MalformedTemplate):
        link_bytecode("606", {})


def test_non_hex_template() -> None:
    with pytest.raises(MalformedTemplate):
        link_bytecode("60zz", {})


def test_anonymous_slot_needs_link_references() -> None:
    with pytest.raises(MalformedTemplate):
        link_bytecode(PREFIX + "_" * 40, {"Lib": LIBRARY_ADDRESS})


def test_truncated_placeholder() -> None:
    with pytest.raises(MalformedTemplate):
        link_bytecode(PREFIX + LIB_PLACEHOLDER[:30], {"Lib": LIBRARY_ADDRESS})


def test_misaligned_placeholder() -> None:
    with pytest.raises(MalformedTemplate):
        link_bytecode("6" + LIB_PLACEHOLDER + "0", {"Lib": LIBRARY_ADDRESS})


def test_linking_errors_are_value_errors() -> None:
    assert issubclass(LinkingError, ValueError)
    for error in (InvalidAddress, UnresolvedSymbol, MalformedTemplate, IncompleteLinkage):
        assert issubclass(error, LinkingError)


def test_link_with_references() -> None:
    template = PREFIX + "_" * 40 + SUFFIX
    linked = link_bytecode(
        template, {"Lib": LIBRARY_ADDRESS}, link_references={"Lib": [{"start": 20, "length": 20}]}
    )
    assert linked == PREFIX + "11" * 20 + SUFFIX


def test_link_references_accept_named_placeholders() -> None:
    template = PREFIX + LIB_PLACEHOLDER + SUFFIX
    linked = link_bytecode(
        template, {"Lib": LIBRARY_ADDRESS}, link_references={"Lib": [{"start": 20, "length": 20}]}
    )
    assert linked == PREFIX + "11" * 20 + SUFFIX


def test_link_references_missing_resolution() -> None:
    with pytest.raises(UnresolvedSymbol):
        link_bytecode(
            PREFIX + "_" * 40, {}, link_references={"Lib": [{"start": 20, "length": 20}]}
        )


def test_link_references_not_covering_every_slot() -> None:
    """ A slot the references do not mention must not go unnoticed """
    template = LIB_PLACEHOLDER + LIB_PLACEHOLDER
    with pytest.raises(IncompleteLinkage):
        link_bytecode(
            template,
            {"Lib": LIBRARY_ADDRESS},
            link_references={"Lib": [{"start": 0, "length": 20}]},
        )


@pytest.mark.parametrize(
    "references",
    [
        {"Lib": [{"start": 21, "length": 20}]},
        {"Lib": [{"start": 20, "length": 19}]},
        {"Lib": [{"start": 40, "length": 20}]},
        {"Lib": [{"start": -1, "length": 20}]},
        {"Lib": [{"start": 20}]},
        {"Other": [{"start": 20, "length": 20}]},
    ],
)
def test_bad_link_references(references: dict) -> None:
    with pytest.raises(MalformedTemplate):
        link_bytecode(
            PREFIX + LIB_PLACEHOLDER + SUFFIX,
            {"Lib": LIBRARY_ADDRESS, "Other": OTHER_LIBRARY_ADDRESS},
            link_references=references,
        )


def test_overlapping_link_references() -> None:
    template = "_" * 60
    with pytest.raises(MalformedTemplate):
        link_bytecode(
            template,
            {"Lib": LIBRARY_ADDRESS},
            link_references={"Lib": [{"start": 0, "length": 20}, {"start": 10, "length": 20}]},
        )


def test_find_link_references() -> None:
    hashed = get_placeholder_for_library_identifier("Other")
    template = "0x" + PREFIX + LIB_PLACEHOLDER + hashed + LIB_PLACEHOLDER
    assert find_link_references(template) == {
        "Lib": [{"start": 20, "length": 20}, {"start": 60, "length": 20}],
        hashed: [{"start": 40, "length": 20}],
    }


def test_is_fully_linked() -> None:
    assert is_fully_linked("0x6060")
    assert not is_fully_linked(PREFIX + LIB_PLACEHOLDER)
    assert not is_fully_linked(get_placeholder_for_library_identifier("Lib"))


def test_normalize_library_address() -> None:
    assert normalize_library_address(LIBRARY_ADDRESS) == "11" * 20
    assert normalize_library_address("11" * 20) == "11" * 20
    assert normalize_library_address("0X" + "AB" * 20) == "ab" * 20


def test_name_ending_in_filler() -> None:
    """ Trailing underscores of a library name merge with the filler """
    placeholder = get_placeholder_for_library_identifier("Lib_", PlaceholderStyle.LEGACY)
    assert placeholder == LIB_PLACEHOLDER
    assert link_bytecode("60" + placeholder + "61", {"Lib_": LIBRARY_ADDRESS}) == (
        "60" + "11" * 20 + "61"
    )


def test_truncated_names_with_different_addresses() -> None:
    """ Two libraries sharing their first 36 characters cannot be told apart """
    first = "contracts/wallet/library/WalletLibraryA"
    second = "contracts/wallet/library/WalletLibraryB"
    placeholder = get_placeholder_for_library_identifier(first, PlaceholderStyle.LEGACY)
    assert placeholder == get_placeholder_for_library_identifier(second, PlaceholderStyle.LEGACY)

    with pytest.raises(MalformedTemplate) as excinfo:
        link_bytecode(
            "60" + placeholder + "61", {first: LIBRARY_ADDRESS, second: OTHER_LIBRARY_ADDRESS}
        )
    assert "Link references are required" in str(excinfo.value)

    # The same address for both is not ambiguous
    linked = link_bytecode(
        "60" + placeholder + "61", {first: LIBRARY_ADDRESS, second: LIBRARY_ADDRESS}
    )
    assert linked == "60" + "11" * 20 + "61"


def test_truncated_names_told_apart_by_references() -> None:
    first = "contracts/wallet/library/WalletLibraryA"
    second = "contracts/wallet/library/WalletLibraryB"
    placeholder = get_placeholder_for_library_identifier(first, PlaceholderStyle.LEGACY)
    linked = link_bytecode(
        placeholder + placeholder,
        {first: LIBRARY_ADDRESS, second: OTHER_LIBRARY_ADDRESS},
        link_references={
            first: [{"start": 0, "length": 20}],
            second: [{"start": 20, "length": 20}],
        },
    )
    assert linked == "11" * 20 + "22" * 20


@pytest.mark.parametrize("stray", ["_", "$", "z"])
def test_stray_characters_outside_referenced_slots(stray: str) -> None:
    template = PREFIX + LIB_PLACEHOLDER + "6" + stray
    with pytest.raises(MalformedTemplate):
        link_bytecode(
            template,
            {"Lib": LIBRARY_ADDRESS},
            link_references={"Lib": [{"start": 20, "length": 20}]},
        )
