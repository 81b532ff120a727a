"""
Batch SHA3-256 pipeline with selectable permutation backends.

Backends:
  python : pure Python sponge, one message at a time
  numpy  : crypto.sponge.sha3_256_batch with the NumPy permutation
  c      : C sponge via ctypes; calls release the GIL, so chunks run in parallel
  jax    : sha3_256_batch driven by the JAX-compiled permutation
  auto   : c if the extension compiles, otherwise numpy

A batch is split into chunks of at most `batch_size` messages and the
chunks are spread over a thread pool. Output order always matches input
order.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..crypto import fast_keccak
from ..crypto.keccak import keccak_f1600_batch
from ..crypto.sponge import BytesLike, sha3_256, sha3_256_batch
from ..core import jax_keccak

logger = logging.getLogger(__name__)

BACKENDS = ("python", "numpy", "c", "jax")


@dataclass
class PipelineConfig:
    """Runtime settings for HashPipeline (filled from the CLI)."""
    backend: str = "auto"
    batch_size: int = 4096
    threads: int = 1

    def __post_init__(self):
        if self.backend not in BACKENDS + ("auto",):
            raise ValueError(
                f"Unknown backend {self.backend!r}; choose from {', '.join(BACKENDS)} or auto"
            )
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.threads <= 0:
            raise ValueError(f"threads must be positive, got {self.threads}")


@dataclass
class PipelineStats:
    """Throughput statistics for a pipeline."""
    total_messages: int = 0
    total_bytes: int = 0
    busy_time: float = 0.0
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed(self) -> float:
        return time.time() - self.start_time

    @property
    def hashrate(self) -> float:
        """Messages per second of time spent hashing."""
        return self.total_messages / self.busy_time if self.busy_time > 0 else 0

    @property
    def throughput(self) -> float:
        """Input bytes per second of time spent hashing."""
        return self.total_bytes / self.busy_time if self.busy_time > 0 else 0


def available_backends() -> List[str]:
    """Backends usable in this process, in order of preference."""
    found = []
    if fast_keccak.is_available():
        found.append("c")
    if jax_keccak.is_available():
        found.append("jax")
    found.extend(["numpy", "python"])
    return found


def resolve_backend(name: str) -> str:
    """Map "auto" to a concrete backend and reject unavailable ones."""
    if name == "auto":
        return "c" if fast_keccak.is_available() else "numpy"
    if name == "jax" and not jax_keccak.is_available():
        raise ValueError("Backend 'jax' requested but JAX is not installed")
    if name == "c" and not fast_keccak.is_available():
        raise ValueError("Backend 'c' requested but the C extension could not be built")
    if name not in BACKENDS:
        raise ValueError(f"Unknown backend {name!r}")
    return name


class HashPipeline:
    """
    Hashes many messages with one backend and keeps running statistics.

    Usage:
        with HashPipeline(PipelineConfig(backend="numpy")) as pipeline:
            digests = pipeline.hash_many([b"abc", b""])
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()
        self.backend = resolve_backend(self.config.backend)
        self._chunk_fn = self._build_chunk_fn()
        self._executor = ThreadPoolExecutor(max_workers=self.config.threads)
        self._stats = PipelineStats()

        logger.info(
            f"Hash pipeline ready: backend={self.backend}, "
            f"batch_size={self.config.batch_size}, threads={self.config.threads}"
        )

    def _build_chunk_fn(self) -> Callable[[Sequence[BytesLike]], List[bytes]]:
        if self.backend == "python":
            return lambda chunk: [sha3_256(m) for m in chunk]
        if self.backend == "c":
            return lambda chunk: [fast_keccak.sha3_256(m) for m in chunk]
        if self.backend == "jax":
            engine = jax_keccak.JaxKeccak(jax_keccak.get_accelerator_device())
            permute = engine.permute
        else:
            permute = keccak_f1600_batch
        return lambda chunk: [bytes(row) for row in sha3_256_batch(chunk, permute)]

    def hash_many(self, messages: Sequence[BytesLike]) -> List[bytes]:
        """
        SHA3-256 of every message.

        Args:
            messages: Bytes-like messages

        Returns:
            List of 32-byte digests in input order
        """
        messages = list(messages)
        if not messages:
            return []

        size = self.config.batch_size
        chunks = [messages[i:i + size] for i in range(0, len(messages), size)]

        t0 = time.perf_counter()
        digests: List[bytes] = []
        for part in self._executor.map(self._chunk_fn, chunks):
            digests.extend(part)
        t1 = time.perf_counter()

        self._stats.total_messages += len(messages)
        self._stats.total_bytes += sum(len(m) for m in messages)
        self._stats.busy_time += t1 - t0
        logger.debug(f"Hashed {len(messages)} messages in {len(chunks)} chunk(s), {(t1 - t0) * 1000:.1f}ms")

        return digests

    def hash_one(self, message: BytesLike) -> bytes:
        return self.hash_many([message])[0]

    def close(self):
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "HashPipeline":
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def stats(self) -> PipelineStats:
        """Current pipeline statistics."""
        return self._stats
