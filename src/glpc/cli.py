"""GLPC CLI — load a .gpc script, run it, then call its main function."""

from __future__ import annotations

import logging
import sys

from . import emit, parse
from .errors import GlpcRuntimeError, GlpcSyntaxError
from .runtime import Interpreter, error_lines


USAGE: str = """\
glpc [OPTIONS] SCRIPT

Run a GLPC (.gpc) script: execute its top-level statements, then call main().

Options:
  --ast          Print the parsed program as s-expressions and exit
  -v, --verbose  Log interpreter activity to stderr
  -h, --help     Show this help message
"""


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    show_ast = False
    verbose = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--ast":
            show_ast = True
            i += 1
        elif arg == "--verbose" or arg == "-v":
            verbose = True
            i += 1
        elif arg.startswith("-"):
            print("glpc: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("glpc: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2
    if filepath == "":
        print("glpc: missing script argument", file=sys.stderr)
        print(USAGE, end="", file=sys.stderr)
        return 2

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s"
        )

    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("glpc: " + filepath + ": No such file or directory", file=sys.stderr)
        return 1
    except OSError as e:
        print("glpc: " + filepath + ": " + str(e), file=sys.stderr)
        return 1
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("glpc: " + filepath + ": invalid utf-8", file=sys.stderr)
        return 1

    program = parse(source, filepath)
    if program.errors:
        for err in program.errors:
            print("glpc: syntax error: " + str(err), file=sys.stderr)
        return 1

    if show_ast:
        print(emit(program), end="")
        return 0

    interp = Interpreter(stdout=sys.stdout)
    try:
        interp.interpret(program.statements, program.distances)
        interp.run_main()
    except GlpcSyntaxError as e:
        for line in error_lines(e):
            print("glpc: syntax error: " + line, file=sys.stderr)
        return 1
    except GlpcRuntimeError as e:
        print("glpc: " + str(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
