"""SHA3-256 (FIPS 202) on a from-scratch Keccak-f[1600] permutation."""

from .crypto.keccak import keccak_f1600
from .crypto.padding import pad
from .crypto.sponge import hexdigest, sha3_256, sha3_256_batch

__version__ = "0.1.0"

__all__ = ["sha3_256", "hexdigest", "sha3_256_batch", "keccak_f1600", "pad"]
