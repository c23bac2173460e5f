"""Build and run generated Go programs with the Go toolchain."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path

DEFAULT_GO = "go"
DEFAULT_TIMEOUT = 120.0


class BuildError(Exception):
    """The Go toolchain is missing, failed, or timed out."""


class RunError(Exception):
    """The built binary could not be started or timed out."""


def build(
    go_source: str,
    workdir: Path,
    go: str = DEFAULT_GO,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Write go_source into workdir and `go build` it. Returns the binary path."""
    source_path = workdir / "main.go"
    source_path.write_text(go_source, encoding="utf-8")
    binary = workdir / "main"
    cmd = [go, "build", "-o", str(binary), str(source_path)]
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, timeout=timeout, cwd=workdir
        )
    except FileNotFoundError:
        raise BuildError("go toolchain not found: " + go) from None
    except subprocess.TimeoutExpired:
        raise BuildError("go build timed out after " + format(timeout, "g") + "s") from None
    if result.returncode != 0:
        raise BuildError("go build failed:\n" + (result.stderr + result.stdout).strip())
    return binary


def run(binary: Path, timeout: float = DEFAULT_TIMEOUT) -> int:
    """Run binary with inherited stdio. Returns its exit status."""
    try:
        result = subprocess.run([str(binary)], timeout=timeout)
    except subprocess.TimeoutExpired:
        raise RunError(binary.name + " timed out after " + format(timeout, "g") + "s") from None
    except OSError as e:
        raise RunError("cannot run " + str(binary) + ": " + str(e)) from None
    return result.returncode


def build_and_run(
    go_source: str,
    go: str = DEFAULT_GO,
    timeout: float = DEFAULT_TIMEOUT,
    keep_as: Path | None = None,
) -> int:
    """Build in a scratch directory, optionally keep the binary, then run it."""
    with tempfile.TemporaryDirectory(prefix="gopy-") as tmp:
        binary = build(go_source, Path(tmp), go, timeout)
        if keep_as is not None:
            shutil.copy2(binary, keep_as)
        return run(binary, timeout)
