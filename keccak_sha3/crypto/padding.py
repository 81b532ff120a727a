"""
SHA-3 multi-rate padding (pad10*1 with the "01" domain suffix).

Padding is always appended, even when the message already fills a whole
number of blocks, so every padded message ends with at least one byte
carrying the final pad bit.
"""

from .constants import PAD_FINAL_BIT, RATE, SHA3_SUFFIX


def _check_rate(rate: int) -> None:
    if rate <= 0 or rate % 8:
        raise ValueError(f"rate must be a positive multiple of 8 bits, got {rate}")


def padded_length(length: int, rate: int = RATE) -> int:
    """Length in bytes of a `length`-byte message after padding."""
    _check_rate(rate)
    remaining = rate - (length * 8) % rate
    if remaining == 0:
        remaining = rate
    return length + (remaining + 7) // 8


def block_count(length: int, rate: int = RATE) -> int:
    """Number of rate-sized blocks the sponge absorbs for a `length`-byte message."""
    return padded_length(length, rate) * 8 // rate


def pad(message: bytes, rate: int = RATE) -> bytes:
    """
    Apply SHA-3 padding to `message`.

    The first padding byte is 0x06 (domain bits plus first pad bit) and
    0x80 is OR-ed into the last one; a single padding byte is 0x86.

    Args:
        message: Raw message bytes (may be empty)
        rate: Sponge rate in bits (1088 for SHA3-256)

    Returns:
        message + padding, a multiple of rate/8 bytes long
    """
    message = bytes(message)
    pad_len = padded_length(len(message), rate) - len(message)

    padding = bytearray(pad_len)
    padding[0] = SHA3_SUFFIX
    padding[-1] |= PAD_FINAL_BIT

    return message + bytes(padding)
