"""
SHA3-256 sponge: absorb padded blocks into the Keccak state, squeeze the digest.

A digest is produced in one pass:

    state = [0] * 25
    absorb(state, pad(message))   # XOR each 136-byte block, then permute
    squeeze(state)                # lanes 0..3, little-endian -> 32 bytes

Only 256 output bits are needed, which is less than the 1088-bit rate,
so squeezing never calls the permutation again.
"""

import struct
from collections import defaultdict
from typing import Callable, Iterable

import numpy as np

from .constants import BLOCK_SIZE, DIGEST_BYTES, LANE_BITS, LANE_COUNT, RATE, WIDTH
from .keccak import keccak_f1600, keccak_f1600_batch
from .padding import block_count, pad

BytesLike = bytes | bytearray | memoryview


def _as_bytes(message: BytesLike) -> bytes:
    if isinstance(message, str):
        raise TypeError("Strings must be encoded before hashing")
    if not isinstance(message, (bytes, bytearray, memoryview)):
        raise TypeError(f"a bytes-like object is required, not '{type(message).__name__}'")
    return bytes(message)


def absorb(state: list[int], padded: bytes, rate: int = RATE) -> list[int]:
    """
    XOR every rate-sized block of `padded` into the state, permuting after each.

    Byte j of a block lands in lane j // 8 (coordinates (w % 5, w // 5),
    i.e. flat index w) at bit offset 8 * (j % 8).

    Args:
        state: 25-lane state, modified in place
        padded: Output of pad(); length must be a multiple of rate/8
        rate: Sponge rate in bits; whole lanes only, below the 1600-bit width

    Returns:
        The same state list

    Raises:
        ValueError: rate is not a multiple of 64 in (0, 1600), or the
            buffer is not a whole number of blocks
    """
    if rate <= 0 or rate >= WIDTH or rate % LANE_BITS:
        raise ValueError(f"rate must be a multiple of {LANE_BITS} bits below {WIDTH}, got {rate}")
    block_size = rate // 8
    if len(padded) % block_size:
        raise ValueError(
            f"padded message length {len(padded)} is not a multiple of {block_size}"
        )
    lanes_per_block = block_size // 8
    fmt = f"<{lanes_per_block}Q"

    for offset in range(0, len(padded), block_size):
        words = struct.unpack_from(fmt, padded, offset)
        for w, word in enumerate(words):
            state[w] ^= word
        keccak_f1600(state)
    return state


def squeeze(state: list[int], digest_size: int = DIGEST_BYTES) -> bytes:
    """Read `digest_size` bytes from the state, lane by lane, least significant byte first."""
    out = bytearray()
    w = 0
    while len(out) < digest_size:
        out += state[w].to_bytes(8, "little")
        w += 1
    return bytes(out[:digest_size])


def sha3_256(message: BytesLike) -> bytes:
    """
    Compute the SHA3-256 digest of `message`.

    Args:
        message: Any bytes-like object, including empty

    Returns:
        32-byte digest
    """
    data = _as_bytes(message)
    state = [0] * LANE_COUNT
    absorb(state, pad(data))
    return squeeze(state)


def hexdigest(message: BytesLike) -> str:
    """SHA3-256 of `message` as 64 lowercase hex digits."""
    return sha3_256(message).hex()


# ---------------------------------------------------------------------------
# Batched digests
# ---------------------------------------------------------------------------

Permutation = Callable[[np.ndarray], np.ndarray]


def sha3_256_batch(
    messages: Iterable[BytesLike],
    permute: Permutation = keccak_f1600_batch,
) -> np.ndarray:
    """
    SHA3-256 for many messages at once.

    Messages that pad to the same number of blocks are absorbed together
    as one (N, 25) state array, so `permute` runs once per block per group.

    Args:
        messages: Bytes-like messages of any lengths
        permute: Batched permutation, (N, 25) uint64 -> (N, 25) uint64

    Returns:
        (len(messages), 32) uint8 array, rows in input order
    """
    data = [_as_bytes(m) for m in messages]
    result = np.zeros((len(data), DIGEST_BYTES), dtype=np.uint8)
    if not data:
        return result

    groups = defaultdict(list)
    for i, m in enumerate(data):
        groups[block_count(len(m))].append(i)

    lanes_per_block = BLOCK_SIZE // 8
    digest_lanes = DIGEST_BYTES // 8

    for nblocks, idxs in groups.items():
        n = len(idxs)
        padded = b"".join(pad(data[i]) for i in idxs)
        words = np.frombuffer(padded, dtype="<u8").reshape(n, nblocks, lanes_per_block)

        states = np.zeros((n, LANE_COUNT), dtype=np.uint64)
        for b in range(nblocks):
            states[:, :lanes_per_block] ^= words[:, b, :]
            states = np.asarray(permute(states), dtype=np.uint64)

        # .astype() gives a contiguous little-endian copy for the byte view
        out = states[:, :digest_lanes].astype("<u8").view(np.uint8).reshape(n, DIGEST_BYTES)
        result[idxs] = out

    return result
