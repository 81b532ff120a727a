"""
keccak-sha3: CLI entry point

Usage:
    # Interactive: type a line, get its SHA3-256; 'q' quits
    python -m keccak_sha3

    # Hash the given arguments and exit
    python -m keccak_sha3 abc "hello world"

    # Benchmark mode (compare permutation backends)
    python -m keccak_sha3 --benchmark --backend auto --batch-size 4096
"""

import argparse
import logging
import os
import sys
import time
from typing import BinaryIO, List, Optional, TextIO

from .batch.pipeline import BACKENDS, HashPipeline, PipelineConfig, available_backends
from .crypto.sponge import sha3_256

logger = logging.getLogger(__name__)

PROMPT = "\nEnter a string to hash with SHA3-256 (type 'q' to quit):\n> "
QUIT = b"q"


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="keccak-sha3",
        description="SHA3-256 (FIPS 202) built on a from-scratch Keccak-f[1600]",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Interactive:  python -m keccak_sha3
  One-shot:     python -m keccak_sha3 abc
  Benchmark:    python -m keccak_sha3 --benchmark --batch-size 4096
        """,
    )

    parser.add_argument(
        "messages", nargs="*", metavar="MESSAGE",
        help="Strings to hash (raw argv bytes); omit for the interactive prompt",
    )
    parser.add_argument(
        "--benchmark", action="store_true",
        help="Measure hashing throughput of the available backends",
    )
    parser.add_argument(
        "--backend", choices=BACKENDS + ("auto",), default="auto",
        help="Permutation backend for batch hashing (default: auto)",
    )
    parser.add_argument(
        "--batch-size", "-b", type=int, default=4096,
        help="Messages per batch (default: 4096)",
    )
    parser.add_argument(
        "--message-size", type=int, default=64,
        help="Benchmark message length in bytes (default: 64)",
    )
    parser.add_argument(
        "--threads", "-t", type=int, default=0,
        help="Worker threads for batch hashing (default: auto-detect)",
    )
    parser.add_argument(
        "--duration", type=float, default=5.0,
        help="Seconds to run each benchmark backend (default: 5)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Verbose debug output",
    )

    return parser.parse_args(argv)


def _format_hashrate(h: float) -> str:
    """Format hashrate with appropriate SI prefix."""
    if h >= 1e9:
        return f"{h / 1e9:.2f} GH/s"
    elif h >= 1e6:
        return f"{h / 1e6:.2f} MH/s"
    elif h >= 1e3:
        return f"{h / 1e3:.2f} KH/s"
    else:
        return f"{h:.2f} H/s"


def run_interactive(stdin: Optional[BinaryIO] = None, stdout: Optional[TextIO] = None) -> int:
    """
    Read-hash-print loop.

    Each line is read as raw bytes and stripped of trailing whitespace.
    The line "q" ends the loop; so does end of input. A failed read is
    reported and the prompt is shown again.

    Returns:
        Process exit status
    """
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout

    while True:
        print(PROMPT, end="", file=stdout, flush=True)

        try:
            line = stdin.readline()
        except OSError as e:
            logger.warning(f"Failed to read input: {e}")
            print(f"Input error: {e}", file=stdout)
            continue

        if not line:
            print(file=stdout)
            return 0

        message = line.rstrip()
        if message == QUIT:
            print("Exiting", file=stdout)
            return 0

        digest = sha3_256(message)
        print(f"\nInput: {message.decode('utf-8', errors='replace')}", file=stdout)
        print(f"SHA3-256: {digest.hex()}", file=stdout)


def hash_arguments(messages: List[str], pipeline: HashPipeline, stdout: Optional[TextIO] = None) -> int:
    """Print `<hexdigest>  <message>` for each argument."""
    stdout = stdout if stdout is not None else sys.stdout
    # os.fsencode restores argv bytes that were not valid UTF-8
    raw = [os.fsencode(m) for m in messages]
    digests = pipeline.hash_many(raw)
    for message, digest in zip(raw, digests):
        print(f"{digest.hex()}  {message.decode('utf-8', errors='replace')}", file=stdout)
    return 0


def run_benchmark(backend: str, batch_size: int, message_size: int, threads: int,
                  duration: float = 5.0) -> int:
    """
    Run a benchmark to measure hashing throughput.

    Every backend is checked against the pure Python sponge on the first
    batch before it is timed.
    """
    log = logging.getLogger("benchmark")

    backends = available_backends() if backend == "auto" else [backend]

    log.info("=" * 60)
    log.info("  keccak-sha3 Benchmark Mode")
    log.info(f"  Backends: {', '.join(backends)}")
    log.info(f"  Batch size: {batch_size}")
    log.info(f"  Message size: {message_size} bytes")
    log.info(f"  Threads: {threads}")
    log.info(f"  Duration: {duration}s per backend")
    log.info("=" * 60)

    messages = [bytes([i & 0xFF]) * message_size for i in range(batch_size)]
    reference = [sha3_256(m) for m in messages[:8]]
    status = 0

    for name in backends:
        config = PipelineConfig(backend=name, batch_size=batch_size, threads=threads)
        with HashPipeline(config) as pipeline:
            # Warmup (also triggers C compilation / JAX tracing)
            first = pipeline.hash_many(messages)
            if first[:8] != reference:
                log.error(f"Backend {name} disagrees with the reference sponge, skipping")
                status = 1
                continue

            start = time.perf_counter()
            while time.perf_counter() - start < duration:
                pipeline.hash_many(messages)

            stats = pipeline.stats
            log.info("-" * 40)
            log.info(f"{name:>6}: {_format_hashrate(stats.hashrate)} "
                     f"({stats.throughput / 1e6:.2f} MB/s, {stats.total_messages:,} hashes, "
                     f"{stats.elapsed:.1f}s wall)")

    log.info("Benchmark complete")
    return status


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    # Auto-detect threads if not specified
    if args.threads <= 0:
        args.threads = max(1, os.cpu_count() or 4)

    try:
        if args.benchmark:
            return run_benchmark(args.backend, args.batch_size, args.message_size,
                                 args.threads, args.duration)

        if args.messages:
            config = PipelineConfig(backend=args.backend, batch_size=args.batch_size,
                                    threads=args.threads)
            with HashPipeline(config) as pipeline:
                return hash_arguments(args.messages, pipeline)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return run_interactive()


if __name__ == "__main__":
    sys.exit(main())
