"""gopy CLI — compile a .gopy file to Go, then build and run it."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from .ast import to_dict
from .backend.go import GenerateError, GoGenerator
from .build import DEFAULT_GO, DEFAULT_TIMEOUT, BuildError, RunError, build_and_run
from .errorlog import DEFAULT_LOG, ErrorLog
from .parse import parse
from .tokens import tokenize

PHASES: list[str] = ["tokens", "parse", "generate"]

USAGE: str = """\
gopy [OPTIONS] FILE

Compile a gopy program to Go, build it with the Go toolchain and run it.

Options:
  --stop-at PHASE     Print the result of a phase and exit: tokens, parse,
                      generate
  -o, --output FILE   Write the phase output (or the generated Go) to FILE
  --keep              Keep the built binary next to FILE
  --timeout SECONDS   Build and run timeout (default 120, env GOPY_TIMEOUT)
  --log FILE          Error log path (default gopy_errors.log, env GOPY_LOG)
  --no-log            Do not write an error log
  --go PATH           Go toolchain binary (default go, env GOPY_GO)
  -h, --help          Show this help message
"""


class Options:
    """Parsed command-line options."""

    def __init__(self) -> None:
        self.filepath: str = ""
        self.stop_at: str | None = None
        self.output_file: str | None = None
        self.keep: bool = False
        self.timeout: float = DEFAULT_TIMEOUT
        self.log_path: str | None = DEFAULT_LOG
        self.go: str = DEFAULT_GO


class UsageError(Exception):
    """Bad command line; reported with exit status 2."""


def _parse_timeout(value: str) -> float:
    try:
        timeout = float(value)
    except ValueError:
        raise UsageError("invalid timeout '" + value + "'") from None
    if timeout <= 0:
        raise UsageError("timeout must be positive, got '" + value + "'")
    return timeout


def parse_args(args: list[str], env: dict[str, str]) -> Options | None:
    """Parse argv against environment defaults. Returns None when help was shown."""
    opts = Options()
    if env.get("GOPY_GO"):
        opts.go = env["GOPY_GO"]
    if env.get("GOPY_LOG"):
        opts.log_path = env["GOPY_LOG"]
    if env.get("GOPY_TIMEOUT"):
        opts.timeout = _parse_timeout(env["GOPY_TIMEOUT"])
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return None
        if arg in ("--stop-at", "-o", "--output", "--timeout", "--log", "--go"):
            if i + 1 >= len(args):
                raise UsageError(arg + " requires an argument")
            value = args[i + 1]
            if arg == "--stop-at":
                if value not in PHASES:
                    raise UsageError("unknown phase '" + value + "'")
                opts.stop_at = value
            elif arg == "--timeout":
                opts.timeout = _parse_timeout(value)
            elif arg == "--log":
                opts.log_path = value
            elif arg == "--go":
                opts.go = value
            else:
                opts.output_file = value
            i += 2
        elif arg == "--keep":
            opts.keep = True
            i += 1
        elif arg == "--no-log":
            opts.log_path = None
            i += 1
        elif arg.startswith("-"):
            raise UsageError("unknown flag '" + arg + "'")
        elif opts.filepath == "":
            opts.filepath = arg
            i += 1
        else:
            raise UsageError("unexpected argument '" + arg + "'")
    if opts.filepath == "":
        raise UsageError("missing file argument")
    return opts


def read_source(filepath: str) -> str | None:
    """Read and decode filepath, reporting failures on stderr."""
    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("gopy: " + filepath + ": No such file or directory", file=sys.stderr)
        return None
    except OSError as e:
        print("gopy: " + filepath + ": " + str(e), file=sys.stderr)
        return None
    try:
        return raw.decode("utf-8")
    except ValueError:
        print("gopy: " + filepath + ": invalid utf-8", file=sys.stderr)
        return None


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(output)
        except OSError:
            print("gopy: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    print(output, end="" if output.endswith("\n") else "\n")
    return 0


def format_tokens(source: str) -> str:
    lines: list[str] = []
    for tok in tokenize(source):
        lines.append(
            str(tok.line) + ":" + str(tok.col) + "\t" + tok.type + "\t" + repr(tok.literal)
        )
    return "\n".join(lines) + "\n"


def keep_path(filepath: str) -> Path:
    """Where --keep puts the binary: FILE without its extension."""
    path = Path(filepath)
    if path.suffix:
        return path.with_suffix("")
    return path.with_name(path.name + ".out")


def compile_and_run(opts: Options, source: str, log: ErrorLog) -> int:
    if opts.stop_at == "tokens":
        return write_output(format_tokens(source), opts.output_file)
    program, errors = parse(source)
    if errors:
        print("gopy: parse errors:", file=sys.stderr)
        for msg in errors:
            print("\t" + msg, file=sys.stderr)
            log.log("Parser Error: " + msg)
        return 1
    if opts.stop_at == "parse":
        return write_output(json.dumps(to_dict(program), indent=2) + "\n", opts.output_file)
    try:
        go_source = GoGenerator().generate(program)
    except GenerateError as e:
        message = "Generator Error: " + str(e)
        print("gopy: " + message, file=sys.stderr)
        log.log(message)
        return 1
    if opts.stop_at == "generate":
        return write_output(go_source, opts.output_file)
    if opts.output_file is not None and write_output(go_source, opts.output_file) != 0:
        return 1
    keep_as = keep_path(opts.filepath) if opts.keep else None
    try:
        return build_and_run(go_source, opts.go, opts.timeout, keep_as)
    except BuildError as e:
        print("gopy: " + str(e), file=sys.stderr)
        log.log("Build Error: " + str(e))
        return 1
    except RunError as e:
        print("gopy: " + str(e), file=sys.stderr)
        log.log("Run Error: " + str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    try:
        opts = parse_args(args, dict(os.environ))
    except UsageError as e:
        print("gopy: " + str(e), file=sys.stderr)
        return 2
    if opts is None:
        return 0
    source = read_source(opts.filepath)
    if source is None:
        return 1
    if opts.log_path is None:
        log = ErrorLog(None)
    else:
        try:
            log = ErrorLog.open(opts.log_path)
        except OSError as e:
            print("gopy: cannot open log '" + opts.log_path + "': " + str(e), file=sys.stderr)
            return 1
    with log:
        return compile_and_run(opts, source, log)


if __name__ == "__main__":
    sys.exit(main())
