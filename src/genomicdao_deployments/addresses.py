"""Address helpers for genomicdao-deployments library."""

from typing import Any

from eth_utils import is_address, to_checksum_address


def normalize_address(value: Any) -> str:
    """
    Convert an address to its EIP-55 checksummed form.

    Raises:
        ValueError: If value is not a 20-byte address
    """
    if not is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()
