from parity_contracts.constants import ADDRESS_LENGTH


def fake_bytes(size: int = ADDRESS_LENGTH, fill: str = "00") -> bytes:
    """ `size` bytes, each given as two hex digits in `fill` """
    return bytes.fromhex(fill * size)
