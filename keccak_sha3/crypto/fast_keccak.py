"""
Fast Keccak-f1600 / SHA3-256 via C extension (ctypes).

Auto-compiles a C implementation of the permutation and the one-shot
SHA3-256 sponge on first use, then exposes them to Python. ctypes calls
release the GIL, so the batch pipeline can run them on a thread pool.

The C source is embedded directly in this file, so it works even
when installed via pip (which doesn't package .c files in wheels).

Falls back to the pure Python / NumPy implementation if compilation fails.
"""

import ctypes
import logging
import os
import subprocess
import sys
import tempfile
import threading
from pathlib import Path
from typing import Optional

import numpy as np

from .constants import DIGEST_BYTES, LANE_COUNT
from . import keccak as _py_keccak
from . import sponge as _py_sponge

logger = logging.getLogger(__name__)

# The compiled library handle
_lib: Optional[ctypes.CDLL] = None
_init_done = False
_init_lock = threading.Lock()

# ─────────────────────────────────────────────────────────────────────
# Embedded C source: Keccak-f[1600] + SHA3-256 sponge
# ─────────────────────────────────────────────────────────────────────
_KECCAK_C_SOURCE = r"""
#include <stddef.h>
#include <stdint.h>
#include <string.h>

#define SHA3_256_BLOCK 136

static const uint64_t RC[24] = {
    0x0000000000000001ULL, 0x0000000000008082ULL,
    0x800000000000808aULL, 0x8000000080008000ULL,
    0x000000000000808bULL, 0x0000000080000001ULL,
    0x8000000080008081ULL, 0x8000000000008009ULL,
    0x000000000000008aULL, 0x0000000000000088ULL,
    0x0000000080008009ULL, 0x000000008000000aULL,
    0x000000008000808bULL, 0x800000000000008bULL,
    0x8000000000008089ULL, 0x8000000000008003ULL,
    0x8000000000008002ULL, 0x8000000000000080ULL,
    0x000000000000800aULL, 0x800000008000000aULL,
    0x8000000080008081ULL, 0x8000000000008080ULL,
    0x0000000080000001ULL, 0x8000000080008008ULL,
};

static const int ROTATIONS[25] = {
     0,  1, 62, 28, 27,
    36, 44,  6, 55, 20,
     3, 10, 43, 25, 39,
    41, 45, 15, 21,  8,
    18,  2, 61, 56, 14,
};

static const int PI_TARGETS[25] = {
     0, 10, 20,  5, 15,
    16,  1, 11, 21,  6,
     7, 17,  2, 12, 22,
    23,  8, 18,  3, 13,
    14, 24,  9, 19,  4,
};

static inline uint64_t rotl64(uint64_t x, int n) {
    return n ? (x << n) | (x >> (64 - n)) : x;
}

void keccak_f1600(uint64_t state[25]) {
    uint64_t t, bc[5], temp[25];
    int round, i, j;
    for (round = 0; round < 24; round++) {
        for (i = 0; i < 5; i++)
            bc[i] = state[i] ^ state[i+5] ^ state[i+10] ^ state[i+15] ^ state[i+20];
        for (i = 0; i < 5; i++) {
            t = bc[(i+4)%5] ^ rotl64(bc[(i+1)%5], 1);
            for (j = 0; j < 25; j += 5)
                state[j+i] ^= t;
        }
        for (i = 0; i < 25; i++)
            temp[PI_TARGETS[i]] = rotl64(state[i], ROTATIONS[i]);
        for (j = 0; j < 25; j += 5) {
            state[j+0] = temp[j+0] ^ ((~temp[j+1]) & temp[j+2]);
            state[j+1] = temp[j+1] ^ ((~temp[j+2]) & temp[j+3]);
            state[j+2] = temp[j+2] ^ ((~temp[j+3]) & temp[j+4]);
            state[j+3] = temp[j+3] ^ ((~temp[j+4]) & temp[j+0]);
            state[j+4] = temp[j+4] ^ ((~temp[j+0]) & temp[j+1]);
        }
        state[0] ^= RC[round];
    }
}

void keccak_f1600_batch(uint64_t *states, int n) {
    int i;
    for (i = 0; i < n; i++)
        keccak_f1600(states + i * 25);
}

static void absorb_block(uint64_t state[25], const uint8_t *block) {
    int w, k;
    for (w = 0; w < SHA3_256_BLOCK / 8; w++) {
        uint64_t v = 0;
        for (k = 0; k < 8; k++)
            v |= (uint64_t)block[w*8+k] << (8*k);
        state[w] ^= v;
    }
    keccak_f1600(state);
}

void sha3_256(const uint8_t *msg, size_t len, uint8_t *out) {
    uint64_t state[25];
    uint8_t block[SHA3_256_BLOCK];
    size_t offset = 0, tail;
    int j, k;

    memset(state, 0, sizeof(state));
    while (len - offset >= SHA3_256_BLOCK) {
        absorb_block(state, msg + offset);
        offset += SHA3_256_BLOCK;
    }

    tail = len - offset;
    memset(block, 0, sizeof(block));
    if (tail)
        memcpy(block, msg + offset, tail);
    block[tail] |= 0x06;
    block[SHA3_256_BLOCK - 1] |= 0x80;
    absorb_block(state, block);

    for (j = 0; j < 4; j++)
        for (k = 0; k < 8; k++)
            out[j*8+k] = (uint8_t)(state[j] >> (8*k));
}
"""


def _find_or_compile() -> Optional[ctypes.CDLL]:
    """Find or compile the C keccak library (once per process, thread-safe)."""
    if _init_done:
        return _lib
    with _init_lock:
        if _init_done:
            return _lib
        return _load_or_build()


def _load_or_build() -> Optional[ctypes.CDLL]:
    global _lib, _init_done

    lib_dir = Path(tempfile.gettempdir()) / "keccak_sha3_c"
    lib_dir.mkdir(parents=True, exist_ok=True)

    if sys.platform == "win32":
        suffix = "dll"
    elif sys.platform == "darwin":
        suffix = "dylib"
    else:
        suffix = "so"

    # Keyed on the source so an edited C file never loads a stale build
    tag = _py_sponge.hexdigest(_KECCAK_C_SOURCE.encode())[:12]
    lib_path = lib_dir / f"libkeccak_sha3_{tag}.{suffix}"
    c_path = lib_dir / f"keccak_sha3_{tag}.{os.getpid()}.c"

    # Try loading existing compiled library
    if lib_path.exists():
        try:
            lib = ctypes.CDLL(str(lib_path))
            _setup_lib(lib)
            _lib = lib
            _init_done = True
            logger.info(f"Loaded pre-compiled C Keccak from {lib_path}")
            return lib
        except OSError:
            pass

    logger.info("Compiling C Keccak extension...")
    c_path.write_text(_KECCAK_C_SOURCE)

    # Build under a private name, then rename, so no process loads a partial file
    tmp_path = lib_dir / f"{lib_path.name}.{os.getpid()}.tmp"
    try:
        result = subprocess.run(
            ["gcc", "-O3", "-shared", "-fPIC",
             "-o", str(tmp_path), str(c_path)],
            capture_output=True, text=True, timeout=30,
        )
        if result.returncode == 0:
            os.replace(tmp_path, lib_path)
            lib = ctypes.CDLL(str(lib_path))
            _setup_lib(lib)
            _lib = lib
            _init_done = True
            logger.info(f"Compiled and loaded C Keccak: {lib_path}")
            return lib
        else:
            logger.warning(f"gcc compilation failed: {result.stderr}")
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
        logger.warning(f"Compilation failed: {e}")

    _init_done = True
    logger.warning("Could not compile C Keccak, using pure Python (SLOW)")
    return None


def _setup_lib(lib: ctypes.CDLL):
    """Set up ctypes function signatures."""
    lib.keccak_f1600.argtypes = [ctypes.POINTER(ctypes.c_uint64)]
    lib.keccak_f1600.restype = None

    lib.keccak_f1600_batch.argtypes = [
        ctypes.POINTER(ctypes.c_uint64), ctypes.c_int
    ]
    lib.keccak_f1600_batch.restype = None

    lib.sha3_256.argtypes = [
        ctypes.c_char_p,
        ctypes.c_size_t,
        ctypes.POINTER(ctypes.c_uint8),
    ]
    lib.sha3_256.restype = None


def sha3_256(message: _py_sponge.BytesLike) -> bytes:
    """
    C-accelerated SHA3-256; same contract as sponge.sha3_256().

    Uses the pure Python sponge when the extension is unavailable.
    """
    lib = _find_or_compile()
    if lib is None:
        return _py_sponge.sha3_256(message)

    data = _py_sponge._as_bytes(message)
    out = (ctypes.c_uint8 * DIGEST_BYTES)()
    lib.sha3_256(data, ctypes.c_size_t(len(data)), out)
    return bytes(out)


def keccak_f1600_batch(states: np.ndarray) -> np.ndarray:
    """
    C-accelerated batch permutation, (N, 25) uint64 -> new (N, 25) array.

    Uses the NumPy engine when the extension is unavailable.
    """
    lib = _find_or_compile()
    if lib is None:
        return _py_keccak.keccak_f1600_batch(states)

    if states.ndim != 2 or states.shape[1] != LANE_COUNT:
        raise ValueError(f"expected shape (N, {LANE_COUNT}), got {states.shape}")
    out = np.array(states, dtype=np.uint64, order="C", copy=True)
    lib.keccak_f1600_batch(
        out.ctypes.data_as(ctypes.POINTER(ctypes.c_uint64)),
        ctypes.c_int(out.shape[0]),
    )
    return out


def is_available() -> bool:
    """Check if the C extension is available."""
    return _find_or_compile() is not None
