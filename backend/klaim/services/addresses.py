ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
SIGNATURE_PATTERN = r"^(0x)?[a-fA-F0-9]{130}$"


def normalize_address(value: str) -> str:
    """Canonical form used as the users/assets lookup key."""
    return value.strip().lower()


def addresses_equal(a: str, b: str) -> bool:
    return normalize_address(a) == normalize_address(b)
