"""
Tests for the batch pipeline and the command line front end.

  - HashPipeline order preservation, chunking, stats, backend selection
  - Interactive loop: digest output, 'q', end of input, read errors
  - argv mode and `python -m keccak_sha3` end to end
"""

import io
import os
import subprocess
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from keccak_sha3 import sha3_256
from keccak_sha3.batch.pipeline import (
    HashPipeline,
    PipelineConfig,
    available_backends,
    resolve_backend,
)
from keccak_sha3.main import main, run_interactive

ABC_HEX = "3a985da74fe225b2045c172d6bd390bd855f086e3e9d525b46bfe24511431532"
EMPTY_HEX = "a7ffc6f8bf1ed76651c14756a061d662f580ff4de43b49fa82d80a4b80f8434a"
PROJECT_ROOT = os.path.join(os.path.dirname(__file__), '..')


class FlakyInput:
    """Binary stream whose first `failures` reads raise OSError."""

    def __init__(self, data: bytes, failures: int = 1):
        self._stream = io.BytesIO(data)
        self._failures = failures

    def readline(self):
        if self._failures:
            self._failures -= 1
            raise OSError("device not ready")
        return self._stream.readline()


class TestPipelineConfig:

    def test_defaults(self):
        config = PipelineConfig()
        assert config.backend == "auto"
        assert config.batch_size > 0
        assert config.threads >= 1

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            PipelineConfig(backend="gpu")

    def test_bad_sizes(self):
        with pytest.raises(ValueError):
            PipelineConfig(batch_size=0)
        with pytest.raises(ValueError):
            PipelineConfig(threads=0)


class TestHashPipeline:

    MESSAGES = [b"", b"abc", b"\x00" * 135, b"\x01" * 136, b"\x02" * 137, b"z" * 500, b"q"]

    @pytest.mark.parametrize("backend", ["python", "numpy"])
    def test_order_preserved_across_chunks(self, backend):
        config = PipelineConfig(backend=backend, batch_size=2, threads=3)
        with HashPipeline(config) as pipeline:
            digests = pipeline.hash_many(self.MESSAGES)
        assert digests == [sha3_256(m) for m in self.MESSAGES]

    def test_auto_backend_matches_reference(self):
        with HashPipeline(PipelineConfig(batch_size=3, threads=2)) as pipeline:
            assert pipeline.backend in ("c", "numpy")
            assert pipeline.hash_many(self.MESSAGES) == [sha3_256(m) for m in self.MESSAGES]

    def test_hash_one(self):
        with HashPipeline(PipelineConfig(backend="numpy")) as pipeline:
            assert pipeline.hash_one(b"abc").hex() == ABC_HEX

    def test_empty_input(self):
        with HashPipeline(PipelineConfig(backend="python")) as pipeline:
            assert pipeline.hash_many([]) == []
            assert pipeline.stats.total_messages == 0

    def test_stats(self):
        with HashPipeline(PipelineConfig(backend="numpy")) as pipeline:
            pipeline.hash_many([b"abc", b"defg"])
            pipeline.hash_many([b"h"])
            stats = pipeline.stats
        assert stats.total_messages == 3
        assert stats.total_bytes == 8
        assert stats.busy_time > 0
        assert stats.hashrate > 0
        assert stats.throughput == pytest.approx(8 / stats.busy_time)
        assert stats.elapsed > 0

    def test_available_backends(self):
        found = available_backends()
        assert "numpy" in found and "python" in found

    def test_resolve_auto(self):
        assert resolve_backend("auto") in ("c", "numpy")

    def test_missing_jax_rejected(self, monkeypatch):
        from keccak_sha3.core import jax_keccak
        monkeypatch.setattr(jax_keccak, "HAS_JAX", False)
        with pytest.raises(ValueError):
            resolve_backend("jax")


class TestInteractive:

    def test_abc_then_quit(self):
        out = io.StringIO()
        status = run_interactive(io.BytesIO(b"abc\nq\n"), out)
        text = out.getvalue()
        assert status == 0
        assert f"SHA3-256: {ABC_HEX}" in text
        assert "Input: abc" in text
        assert text.rstrip().endswith("Exiting")

    def test_trailing_whitespace_stripped(self):
        out = io.StringIO()
        run_interactive(io.BytesIO(b"abc \t\r\nq\n"), out)
        assert ABC_HEX in out.getvalue()

    def test_empty_line_hashes_empty_message(self):
        out = io.StringIO()
        run_interactive(io.BytesIO(b"\nq\n"), out)
        assert EMPTY_HEX in out.getvalue()

    def test_q_with_padding_is_not_quit(self):
        out = io.StringIO()
        run_interactive(io.BytesIO(b"qq\nq\n"), out)
        assert sha3_256(b"qq").hex() in out.getvalue()

    def test_end_of_input_exits(self):
        out = io.StringIO()
        assert run_interactive(io.BytesIO(b""), out) == 0
        assert "SHA3-256:" not in out.getvalue()

    def test_read_error_reported_and_loop_continues(self):
        out = io.StringIO()
        status = run_interactive(FlakyInput(b"abc\nq\n", failures=2), out)
        text = out.getvalue()
        assert status == 0
        assert text.count("Input error: device not ready") == 2
        assert ABC_HEX in text

    def test_long_run_of_read_errors_still_reaches_quit(self):
        out = io.StringIO()
        status = run_interactive(FlakyInput(b"abc\nq\n", failures=50), out)
        text = out.getvalue()
        assert status == 0
        assert text.count("Input error") == 50
        assert ABC_HEX in text
        assert text.rstrip().endswith("Exiting")


class TestCommandLine:

    def test_argument_mode(self, capsys):
        status = main(["abc", "", "--backend", "python", "--threads", "1"])
        lines = capsys.readouterr().out.splitlines()
        assert status == 0
        assert lines == [f"{ABC_HEX}  abc", f"{EMPTY_HEX}  "]

    def test_argument_with_undecodable_bytes(self, capsys):
        arg = os.fsdecode(b"\xff")
        status = main([arg, "--backend", "python", "--threads", "1"])
        out = capsys.readouterr().out
        assert status == 0
        assert out.startswith(sha3_256(b"\xff").hex() + "  ")

    def test_unavailable_backend_is_an_error(self, monkeypatch, capsys):
        from keccak_sha3.core import jax_keccak
        monkeypatch.setattr(jax_keccak, "HAS_JAX", False)
        status = main(["abc", "--backend", "jax"])
        assert status == 2
        assert "Error:" in capsys.readouterr().err

    def test_benchmark_runs(self):
        status = main(["--benchmark", "--backend", "numpy", "--batch-size", "16",
                       "--duration", "0.01", "--threads", "1"])
        assert status == 0

    def test_module_entry_point(self):
        env = dict(os.environ, PYTHONPATH=os.path.abspath(PROJECT_ROOT))
        result = subprocess.run(
            [sys.executable, "-m", "keccak_sha3"],
            input=b"abc\nq\n", capture_output=True, timeout=60, env=env,
        )
        assert result.returncode == 0
        assert ABC_HEX.encode() in result.stdout
        assert b"Exiting" in result.stdout


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
