"""
Keccak-f[1600] permutation (FIPS 202, section 3.3).

The scalar engine works in place on a flat list of 25 lanes, lane (x, y)
at index x + 5*y. Each round is theta, rho+pi, chi, iota. The step
functions are exposed individually so intermediate values can be checked
against the published Keccak reference traces.

keccak_f1600_batch() runs the same permutation over an (N, 25) uint64
NumPy array, one independent state per row.
"""

import numpy as np

from .constants import (
    LANE_COUNT,
    MASK64,
    PI_TARGETS,
    ROTATIONS,
    ROUND_CONSTANTS,
    ROUNDS,
)


def lane_index(x: int, y: int) -> int:
    """Flat state index of lane (x, y)."""
    return (x % 5) + 5 * (y % 5)


def rotl64(x: int, n: int) -> int:
    """Rotate left a 64-bit unsigned integer."""
    n = n % 64
    return ((x << n) | (x >> (64 - n))) & MASK64


# ---------------------------------------------------------------------------
# Step mappings (in place on a 25-lane list)
# ---------------------------------------------------------------------------

def theta(state: list[int]) -> None:
    """XOR each lane with the parities of two neighbouring columns."""
    c = [
        state[x] ^ state[x + 5] ^ state[x + 10] ^ state[x + 15] ^ state[x + 20]
        for x in range(5)
    ]
    for x in range(5):
        d = c[(x + 4) % 5] ^ rotl64(c[(x + 1) % 5], 1)
        for y in range(0, LANE_COUNT, 5):
            state[x + y] ^= d


def rho_pi(state: list[int]) -> None:
    """Rotate every lane by its rho offset and move it to its pi position."""
    moved = [0] * LANE_COUNT
    for i in range(LANE_COUNT):
        moved[PI_TARGETS[i]] = rotl64(state[i], ROTATIONS[i])
    state[:] = moved


def chi(state: list[int]) -> None:
    """Non-linear row mix, computed from a snapshot of each row."""
    for base in range(0, LANE_COUNT, 5):
        row = state[base:base + 5]
        for x in range(5):
            state[base + x] = row[x] ^ (~row[(x + 1) % 5] & MASK64 & row[(x + 2) % 5])


def iota(state: list[int], round_idx: int) -> None:
    state[0] ^= ROUND_CONSTANTS[round_idx]


def keccak_round(state: list[int], round_idx: int) -> None:
    """Apply round `round_idx` (0..23) to the state in place."""
    theta(state)
    rho_pi(state)
    chi(state)
    iota(state, round_idx)


def keccak_f1600(state: list[int]) -> list[int]:
    """
    Keccak-f[1600] permutation on a 25-element state of 64-bit words.

    Args:
        state: List of 25 uint64 values (modified in place)

    Returns:
        The permuted state (same list object, mutated)
    """
    if len(state) != LANE_COUNT:
        raise ValueError(f"Keccak state must have {LANE_COUNT} lanes, got {len(state)}")
    for round_idx in range(ROUNDS):
        keccak_round(state, round_idx)
    return state


def keccak_f1600_trace(state: list[int]) -> list[list[int]]:
    """
    Run the permutation on a copy of `state` and record every round.

    Returns:
        24 snapshots; entry r is the state after round r. The last
        entry equals keccak_f1600(state).
    """
    s = list(state)
    if len(s) != LANE_COUNT:
        raise ValueError(f"Keccak state must have {LANE_COUNT} lanes, got {len(s)}")
    trace = []
    for round_idx in range(ROUNDS):
        keccak_round(s, round_idx)
        trace.append(list(s))
    return trace


# ---------------------------------------------------------------------------
# Batched permutation (NumPy)
# ---------------------------------------------------------------------------

_RC_U64 = np.array(ROUND_CONSTANTS, dtype=np.uint64)


def keccak_f1600_batch(states: np.ndarray) -> np.ndarray:
    """
    Batch Keccak-f1600 for multiple states using NumPy vectorization.

    Args:
        states: np.ndarray of shape (N, 25) with dtype=np.uint64

    Returns:
        Permuted states array of same shape (the input is not modified)
    """
    if states.ndim != 2 or states.shape[1] != LANE_COUNT:
        raise ValueError(f"expected shape (N, {LANE_COUNT}), got {states.shape}")
    s = states.astype(np.uint64, copy=True)

    for round_idx in range(ROUNDS):
        # θ step, vectorized across all N states
        c = s[:, 0:5] ^ s[:, 5:10] ^ s[:, 10:15] ^ s[:, 15:20] ^ s[:, 20:25]
        c_next = np.roll(c, -1, axis=1)
        d = np.roll(c, 1, axis=1) ^ ((c_next << np.uint64(1)) | (c_next >> np.uint64(63)))
        s ^= np.tile(d, 5)

        # ρ and π steps
        tmp = np.empty_like(s)
        for i in range(LANE_COUNT):
            rot = ROTATIONS[i]
            if rot == 0:
                tmp[:, PI_TARGETS[i]] = s[:, i]
            else:
                tmp[:, PI_TARGETS[i]] = (s[:, i] << np.uint64(rot)) | (s[:, i] >> np.uint64(64 - rot))

        # χ step, one row of five lanes at a time
        rows = tmp.reshape(-1, 5, 5)
        s = (rows ^ (~np.roll(rows, -1, axis=2) & np.roll(rows, -2, axis=2))).reshape(-1, LANE_COUNT)

        # ι step
        s[:, 0] ^= _RC_U64[round_idx]

    return s
