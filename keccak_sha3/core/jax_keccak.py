"""
JAX-compiled batched Keccak-f[1600] for accelerator backends (TPU/GPU).

The whole 24-round permutation is traced once into a single XLA kernel
and applied to an (N, 25) uint64 batch, one state per row. Lanes stay as
uint64, so 64-bit mode (jax_enable_x64) is switched on before the kernel
is built.

The sponge itself (padding, block XOR, squeeze) stays on the CPU in
crypto.sponge; this module only provides the `permute` callable that
sha3_256_batch() drives.
"""

import numpy as np
import logging

from ..crypto.constants import LANE_COUNT, PI_TARGETS, ROTATIONS, ROUND_CONSTANTS, ROUNDS

logger = logging.getLogger(__name__)

try:
    import jax
    import jax.numpy as jnp
    from jax import devices as jax_devices
    HAS_JAX = True
except ImportError:
    HAS_JAX = False
    logger.debug("JAX not available, accelerator backend disabled")


def get_accelerator_device():
    """
    Detect and return a TPU or GPU device if available.

    Returns:
        JAX device object, or None to use the default JAX backend
    """
    if not HAS_JAX:
        return None

    for platform in ("tpu", "gpu"):
        try:
            found = jax_devices(platform)
        except RuntimeError:
            continue
        if found:
            logger.info(f"Found {len(found)} {platform.upper()} device(s): {found}")
            return found[0]

    logger.info("No accelerator found, will use default JAX backend")
    return None


def _build_permutation_kernel():
    """
    Build the JIT-compiled permutation.

    Returns a function taking (N, 25) uint64 states and returning the
    permuted (N, 25) uint64 states. The round loop is unrolled at trace
    time; rotation amounts are Python ints, so every shift is static.
    """
    rc = jnp.asarray(np.array(ROUND_CONSTANTS, dtype=np.uint64))

    def rotl(x, n):
        if n == 0:
            return x
        return (x << jnp.uint64(n)) | (x >> jnp.uint64(64 - n))

    @jax.jit
    def permutation_kernel(states):
        lanes = [states[:, i] for i in range(LANE_COUNT)]

        for round_idx in range(ROUNDS):
            # θ
            c = [lanes[x] ^ lanes[x + 5] ^ lanes[x + 10] ^ lanes[x + 15] ^ lanes[x + 20]
                 for x in range(5)]
            d = [c[(x + 4) % 5] ^ rotl(c[(x + 1) % 5], 1) for x in range(5)]
            lanes = [lanes[i] ^ d[i % 5] for i in range(LANE_COUNT)]

            # ρ and π
            moved = [None] * LANE_COUNT
            for i in range(LANE_COUNT):
                moved[PI_TARGETS[i]] = rotl(lanes[i], ROTATIONS[i])

            # χ
            lanes = [
                moved[base + x] ^ (~moved[base + (x + 1) % 5] & moved[base + (x + 2) % 5])
                for base in range(0, LANE_COUNT, 5)
                for x in range(5)
            ]

            # ι
            lanes[0] = lanes[0] ^ rc[round_idx]

        return jnp.stack(lanes, axis=1)

    return permutation_kernel


class JaxKeccak:
    """
    Accelerator-backed batch permutation.

    Usage:
        engine = JaxKeccak()
        digests = sha3_256_batch(messages, permute=engine.permute)
    """

    def __init__(self, device=None):
        if not HAS_JAX:
            raise RuntimeError("JAX is not installed; install keccak-sha3[jax]")

        jax.config.update("jax_enable_x64", True)
        self._device = device
        self._kernel = _build_permutation_kernel()
        logger.info(f"Keccak kernel ready on {device if device else 'default JAX device'}")

    def permute(self, states: np.ndarray) -> np.ndarray:
        """
        Permute a batch of states on the device.

        Args:
            states: (N, 25) uint64 array

        Returns:
            (N, 25) uint64 NumPy array
        """
        if states.ndim != 2 or states.shape[1] != LANE_COUNT:
            raise ValueError(f"expected shape (N, {LANE_COUNT}), got {states.shape}")

        batch = jnp.asarray(np.asarray(states, dtype=np.uint64))
        if self._device is not None:
            batch = jax.device_put(batch, self._device)

        result = self._kernel(batch)

        # Transfer result back to CPU
        return np.asarray(result, dtype=np.uint64)


def is_available() -> bool:
    return HAS_JAX
