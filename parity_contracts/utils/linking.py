"""Static linker for hex encoded bytecode templates.

A template reserves a 40 character slot for every library address it calls.
Linking replaces each slot with the hex digits of the library address in
place, so the length of the bytecode and every jump offset stay unchanged.
"""
import re
import string
from logging import getLogger
from typing import Dict, List, Mapping, Optional, Set, Tuple, Union

from eth_typing import HexStr
from eth_utils import encode_hex, is_hex, keccak, remove_0x_prefix
from mypy_extensions import TypedDict

from parity_contracts.constants import (
    ADDRESS_LENGTH,
    HASHED_PLACEHOLDER_MARKER,
    PLACEHOLDER_FILLER,
    SLOT_WIDTH,
    PlaceholderStyle,
)

LOG = getLogger(__name__)

AddressLike = Union[bytes, bytearray, str]

_HEX_DIGITS = frozenset(string.hexdigits)
_HASHED_PLACEHOLDER = re.compile(r"__\$[0-9a-f]{34}\$__")
# Room left for the name in a legacy placeholder: "__" + name + at least "__"
_LEGACY_NAME_WIDTH = SLOT_WIDTH - 4


class LinkReference(TypedDict):
    """Position of one slot, in bytes, as solc reports it in `linkReferences`."""

    start: int
    length: int


LinkReferences = Dict[str, List[LinkReference]]


class LinkingError(ValueError):
    """Base class for everything that prevents a template from being linked."""


class InvalidAddress(LinkingError):
    """A library address is not exactly 20 bytes."""


class UnresolvedSymbol(LinkingError):
    """The template references a library that no address was given for."""

    def __init__(self, symbols: List[str]) -> None:
        self.symbols = symbols
        super().__init__(f"No address given for library symbol(s): {', '.join(symbols)}")


class MalformedTemplate(LinkingError):
    """The template is not hex bytecode with well formed placeholders."""


class IncompleteLinkage(LinkingError):
    """Placeholders are left in the bytecode after linking.

    Such bytecode must never be deployed.
    """


def get_solidity_key_for_library_identifier(library_identifier: str) -> str:
    return encode_hex(keccak(bytes(library_identifier, "utf-8")))[2:36]


def get_placeholder_for_library_identifier(
    library_identifier: str, style: PlaceholderStyle = PlaceholderStyle.HASHED
) -> str:
    if style is PlaceholderStyle.HASHED:
        solidity_key = get_solidity_key_for_library_identifier(library_identifier)
        return f"__${solidity_key}$__"
    label = f"__{library_identifier[:_LEGACY_NAME_WIDTH]}"
    return label.ljust(SLOT_WIDTH, PLACEHOLDER_FILLER)


def normalize_library_address(address: AddressLike) -> str:
    """Returns the 40 lowercase hex digits of a 20 byte address.

    Accepts raw bytes or a hex string, with or without `0x` and in any case.
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != ADDRESS_LENGTH:
            raise InvalidAddress(
                f"Library address must be {ADDRESS_LENGTH} bytes long, got {len(address)}"
            )
        return bytes(address).hex()

    if not isinstance(address, str) or not is_hex(address):
        raise InvalidAddress(f"Library address {address!r} is neither bytes nor a hex string")
    hex_digits = remove_0x_prefix(HexStr(address))
    if len(hex_digits) != SLOT_WIDTH:
        raise InvalidAddress(
            f"Library address {address} must be {ADDRESS_LENGTH} bytes long, "
            f"got {len(hex_digits) / 2:g}"
        )
    return hex_digits.lower()


def _split_prefix(bytecode: str) -> Tuple[str, str]:
    if bytecode[:2] in ("0x", "0X"):
        return bytecode[:2], bytecode[2:]
    return "", bytecode


def _slot_label(slot: str, byte_offset: int) -> str:
    """Derives the name a placeholder stands for.

    Hashed placeholders cannot be reversed, so the placeholder itself is the label.
    """
    if _HASHED_PLACEHOLDER.fullmatch(slot):
        return slot
    name = slot[2:].rstrip(PLACEHOLDER_FILLER)
    if not slot.startswith(PLACEHOLDER_FILLER * 2):
        raise MalformedTemplate(f"Broken placeholder {slot!r} at byte {byte_offset}")
    if not name:
        raise MalformedTemplate(
            f"Anonymous placeholder at byte {byte_offset}, link references are required"
        )
    if HASHED_PLACEHOLDER_MARKER in name:
        raise MalformedTemplate(f"Broken hashed placeholder {slot!r} at byte {byte_offset}")
    return name


def _scan_slots(code: str) -> List[Tuple[int, str]]:
    slots: List[Tuple[int, str]] = []
    position = 0
    while position < len(code):
        pair = code[position : position + 2]
        if pair.startswith(PLACEHOLDER_FILLER):
            slot = code[position : position + SLOT_WIDTH]
            if len(slot) != SLOT_WIDTH:
                raise MalformedTemplate(f"Placeholder at byte {position // 2} is truncated")
            slots.append((position, _slot_label(slot, position // 2)))
            position += SLOT_WIDTH
        elif _HEX_DIGITS.issuperset(pair):
            position += 2
        else:
            raise MalformedTemplate(f"Unexpected characters {pair!r} at byte {position // 2}")
    return slots


def _slot_holds_placeholder(slot: str, symbol: str) -> bool:
    return slot in (
        PLACEHOLDER_FILLER * SLOT_WIDTH,
        get_placeholder_for_library_identifier(symbol, PlaceholderStyle.LEGACY),
        get_placeholder_for_library_identifier(symbol, PlaceholderStyle.HASHED),
    )


def _slots_from_references(code: str, link_references: LinkReferences) -> List[Tuple[int, str]]:
    slots: List[Tuple[int, str]] = []
    for symbol, references in link_references.items():
        for reference in references:
            try:
                start, length = int(reference["start"]), int(reference["length"])
            except (KeyError, TypeError, ValueError) as ex:
                raise MalformedTemplate(
                    f"Invalid link reference {reference!r} for {symbol}"
                ) from ex
            if length != ADDRESS_LENGTH:
                raise MalformedTemplate(
                    f"Link reference for {symbol} at byte {start} spans {length} bytes, "
                    f"expected {ADDRESS_LENGTH}"
                )
            position = 2 * start
            if start < 0 or position + SLOT_WIDTH > len(code):
                raise MalformedTemplate(
                    f"Link reference for {symbol} at byte {start} is out of range"
                )
            if not _slot_holds_placeholder(code[position : position + SLOT_WIDTH], symbol):
                raise MalformedTemplate(f"No placeholder for {symbol} at byte {start}")
            slots.append((position, symbol))

    slots.sort()
    for (previous, _), (current, symbol) in zip(slots, slots[1:]):
        if current < previous + SLOT_WIDTH:
            raise MalformedTemplate(f"Link reference for {symbol} at byte {current // 2} overlaps")
    return slots


def find_link_references(template: str) -> LinkReferences:
    """Lists the placeholders of a template, keyed by the label each one carries."""
    _, code = _split_prefix(template)
    if len(code) % 2:
        raise MalformedTemplate(f"Bytecode has an odd number of hex digits ({len(code)})")
    references: LinkReferences = {}
    for position, label in _scan_slots(code):
        references.setdefault(label, []).append(
            LinkReference(start=position // 2, length=ADDRESS_LENGTH)
        )
    return references


def is_fully_linked(bytecode: str) -> bool:
    _, code = _split_prefix(bytecode)
    return PLACEHOLDER_FILLER not in code and HASHED_PLACEHOLDER_MARKER not in code


def _labels_of(symbol: str) -> Set[str]:
    """Every label a slot standing for `symbol` may carry.

    Scanning strips the filler off legacy placeholders, so trailing
    underscores of the name are lost as well.
    """
    return {
        symbol,
        symbol[:_LEGACY_NAME_WIDTH].rstrip(PLACEHOLDER_FILLER),
        get_placeholder_for_library_identifier(symbol, PlaceholderStyle.HASHED),
    }


def _candidates_by_label(addresses: Mapping[str, str]) -> Dict[str, Dict[str, str]]:
    candidates: Dict[str, Dict[str, str]] = {}
    for symbol, address in addresses.items():
        for label in _labels_of(symbol):
            candidates.setdefault(label, {})[symbol] = address
    return candidates


def _check_linked(code: str) -> None:
    """Raises unless nothing but hex digits is left after substitution."""
    position = 0
    while position < len(code):
        pair = code[position : position + 2]
        if _HEX_DIGITS.issuperset(pair):
            position += 2
            continue
        slot = code[position : position + SLOT_WIDTH]
        if _HASHED_PLACEHOLDER.fullmatch(slot) or (
            len(slot) == SLOT_WIDTH
            and slot.startswith(PLACEHOLDER_FILLER * 2)
            and slot.endswith(PLACEHOLDER_FILLER * 2)
            and HASHED_PLACEHOLDER_MARKER not in slot
        ):
            raise IncompleteLinkage(f"Placeholder {slot!r} at byte {position // 2} is not linked")
        raise MalformedTemplate(f"Unexpected characters {pair!r} at byte {position // 2}")


def link_bytecode(
    template: str,
    resolutions: Mapping[str, AddressLike],
    link_references: Optional[LinkReferences] = None,
) -> str:
    """Links compiled bytecode by replacing every library placeholder
    with the address of that library.

    Parameters:
        template: hex bytecode, the `0x` prefix is kept if present
        resolutions: library symbol to 20 byte address
        link_references: byte offsets of the slots per symbol. Without them the
            slots are found by scanning for placeholders.
    """
    addresses = {
        symbol: normalize_library_address(address) for symbol, address in resolutions.items()
    }

    prefix, code = _split_prefix(template)
    if len(code) % 2:
        raise MalformedTemplate(f"Bytecode has an odd number of hex digits ({len(code)})")

    if link_references is None:
        slots = _scan_slots(code)
    else:
        slots = _slots_from_references(code, link_references)

    candidates = _candidates_by_label(addresses)
    resolved: Dict[str, str] = {}
    used: Set[str] = set()
    missing: List[str] = []
    ambiguous: List[str] = []
    for label in sorted({label for _, label in slots}):
        if link_references is not None and label in addresses:
            matches = {label: addresses[label]}
        else:
            matches = candidates.get(label, {})
        if not matches:
            missing.append(label)
        elif len(set(matches.values())) > 1:
            ambiguous.append(f"{label} ({', '.join(sorted(matches))})")
        else:
            resolved[label] = next(iter(matches.values()))
            used.update(matches)
    if missing:
        raise UnresolvedSymbol(missing)
    if ambiguous:
        raise MalformedTemplate(
            f"Placeholders match libraries with different addresses: {'; '.join(ambiguous)}. "
            "Link references are required to tell them apart"
        )

    pieces: List[str] = []
    cursor = 0
    for position, label in slots:
        pieces.append(code[cursor:position])
        pieces.append(resolved[label])
        cursor = position + SLOT_WIDTH
    pieces.append(code[cursor:])
    linked = "".join(pieces)

    _check_linked(linked)
    if len(linked) != len(code):
        raise MalformedTemplate(
            f"Linking changed the bytecode length from {len(code)} to {len(linked)}"
        )

    unused = [symbol for symbol in addresses if symbol not in used]
    if unused:
        LOG.debug(f"Libraries not referenced by the bytecode: {', '.join(unused)}")
    LOG.debug(f"Linked {len(slots)} slot(s) for {', '.join(sorted(used)) or 'no libraries'}")
    return prefix + linked
