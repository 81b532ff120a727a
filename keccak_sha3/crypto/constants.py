"""
Keccak-f[1600] / SHA3-256 constants (FIPS 202).

All tables are module-level tuples and are never mutated. Lanes are
addressed by (x, y) and stored flat at index x + 5*y.
"""

# ---------------------------------------------------------------------------
# Sponge parameters for SHA3-256
# ---------------------------------------------------------------------------

WIDTH = 1600            # state size in bits
LANE_BITS = 64          # w
LANE_COUNT = 25
ROUNDS = 24             # 12 + 2*log2(w)

RATE = 1088             # bits absorbed per block
CAPACITY = 512
DIGEST_SIZE = 256       # bits

BLOCK_SIZE = RATE // 8  # 136 bytes
DIGEST_BYTES = DIGEST_SIZE // 8

# Domain separator "01" plus the first pad bit, and the final pad bit
SHA3_SUFFIX = 0x06
PAD_FINAL_BIT = 0x80

MASK64 = 0xFFFFFFFFFFFFFFFF

# ---------------------------------------------------------------------------
# Permutation tables
# ---------------------------------------------------------------------------

# Round constants (RC) for the iota step, one per round
ROUND_CONSTANTS = (
    0x0000000000000001, 0x0000000000008082, 0x800000000000808A,
    0x8000000080008000, 0x000000000000808B, 0x0000000080000001,
    0x8000000080008081, 0x8000000000008009, 0x000000000000008A,
    0x0000000000000088, 0x0000000080008009, 0x000000008000000A,
    0x000000008000808B, 0x800000000000008B, 0x8000000000008089,
    0x8000000000008003, 0x8000000000008002, 0x8000000000000080,
    0x000000000000800A, 0x800000008000000A, 0x8000000080008081,
    0x8000000000008080, 0x0000000080000001, 0x8000000080008008,
)

# Rho rotation offsets, indexed ROTATION_OFFSETS[x][y]
ROTATION_OFFSETS = (
    (0, 36, 3, 41, 18),
    (1, 44, 10, 45, 2),
    (62, 6, 43, 15, 61),
    (28, 55, 25, 21, 56),
    (27, 20, 39, 8, 14),
)

# Same offsets in flat lane order (index x + 5*y)
ROTATIONS = tuple(ROTATION_OFFSETS[i % 5][i // 5] for i in range(LANE_COUNT))

# Pi step: lane at flat index x + 5*y moves to (y, 2x + 3y mod 5)
PI_TARGETS = (
    0, 10, 20, 5, 15,
    16, 1, 11, 21, 6,
    7, 17, 2, 12, 22,
    23, 8, 18, 3, 13,
    14, 24, 9, 19, 4,
)
