# Secure Memory Helpers
#
# Python strings are immutable and cannot be wiped; secrets that need to be
# cleared after use travel as bytearrays and are overwritten in place.

from typing import Optional, Union

SecretInput = Union[str, bytes, bytearray]


def to_secret_buffer(value: SecretInput, encoding: str = "utf-8") -> bytearray:
    """Copy a secret into a fresh, wipeable bytearray."""
    if isinstance(value, str):
        return bytearray(value.encode(encoding))
    return bytearray(value)


def zero_buffer(buffer: Optional[bytearray]) -> None:
    """Overwrite a bytearray with zero bytes. Non-bytearrays are ignored."""
    if not isinstance(buffer, bytearray):
        return
    for i in range(len(buffer)):
        buffer[i] = 0


def is_empty_secret(value: Optional[SecretInput]) -> bool:
    return value is None or len(value) == 0
