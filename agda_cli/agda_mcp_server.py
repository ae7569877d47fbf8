#!/usr/bin/env python3
"""Agda CLI and MCP server - check files, inspect holes, run programs.

Every call spawns fresh Agda processes; nothing is kept between calls.
"""

import asyncio
import sys
from pathlib import Path

from fastmcp import FastMCP

from .agda_checker import AgdaChecker, CheckMode, CheckRequest, check_all, validate_agda_file
from .agda_compile import compile_file, compile_js
from .agda_extract import NO_OUTPUT
from .agda_render import strip_ansi
from .agda_session import AgdaError, AgdaSession, Dialect, UsageError


mcp = FastMCP("agda", instructions="""Agda proof assistant - hole-driven development workflow:

1. agda_check: Type-check a file; shows the goal and context at every {! !} hole
2. Edit the file to fill holes, then agda_check again
3. agda_run: Evaluate `main` once the file checks
4. agda_check_all: Check every .agda file under a directory
""")


def _checker(agda: str | None, mode: CheckMode) -> AgdaChecker:
    return AgdaChecker(AgdaSession(agda, dialect=mode.dialect, quiet=mode.quiet))


def _plain(text: str, color: bool) -> str:
    return text if color else strip_ansi(text)


@mcp.tool()
async def agda_check(file: str, text_dialect: bool = False, color: bool = False) -> str:
    """Type-check an Agda file and report goals and errors.

    Args:
        file: Path to a .agda file
        text_dialect: Use Agda's Emacs (--interaction) output instead of JSON
        color: Keep ANSI highlighting in the result (default: plain text)

    Returns: Goals at each hole, errors with code snippets, or "Checked."
    """
    mode = CheckMode(quiet=True, dialect=Dialect.TEXT if text_dialect else Dialect.JSON)
    try:
        path = validate_agda_file(file)
        report = await _checker(None, mode).check(CheckRequest(path, mode))
    except AgdaError as e:
        return f"ERROR: {e}"
    status = "FAILED" if report.failed else "OK"
    return f"{status}\n\n{_plain(report.text, color)}"


@mcp.tool()
async def agda_run(file: str, color: bool = False) -> str:
    """Load an Agda file and evaluate its `main` definition.

    Args:
        file: Path to a .agda file
        color: Keep ANSI highlighting in error output

    Returns: Normal form of main, "No output", or the check errors
    """
    mode = CheckMode(quiet=True, evaluate=True)
    try:
        path = validate_agda_file(file)
        report = await _checker(None, mode).check(CheckRequest(path, mode))
    except AgdaError as e:
        return f"ERROR: {e}"
    if report.failed:
        return f"FAILED\n\n{_plain(report.text, color)}"
    return report.result or NO_OUTPUT


@mcp.tool()
async def agda_check_all(directory: str, color: bool = False) -> str:
    """Load every .agda file under a directory and list which ones fail.

    Args:
        directory: Root directory to walk recursively
        color: Keep ANSI colors in the listing
    """
    try:
        report = await check_all(Path(directory))
    except AgdaError as e:
        return f"ERROR: {e}"
    return _plain(report.text, color)


# =============================================================================
# Command line
# =============================================================================


async def _cmd_check(args, evaluate: bool) -> int:
    mode = CheckMode(
        quiet=args.quiet,
        interactive=args.interactive,
        evaluate=evaluate,
        dialect=Dialect.TEXT if args.text else Dialect.JSON,
    )
    path = validate_agda_file(args.path)
    report = await _checker(args.agda, mode).check(CheckRequest(path, mode))
    if report.failed:
        print(report.text, file=sys.stderr)
        return 1
    if evaluate:
        if report.blocks:
            print(report.text)
        print(report.result or NO_OUTPUT)
    else:
        print(report.text)
    return 0


async def _cmd_check_all(args) -> int:
    mode = CheckMode(quiet=True, dialect=Dialect.TEXT if args.text else Dialect.JSON)
    report = await check_all(args.path, _checker(args.agda, mode), mode)
    print(report.text)
    return 1 if report.failed else 0


async def _cmd_compile(args) -> int:
    path = validate_agda_file(args.path)
    print("Compiling Agda file...")
    executable = await compile_file(path, run=args.run, agda=args.agda)
    if not args.run:
        print(f"Successfully compiled {args.path} to {executable.name}")
        print(f"You can now run the executable with: ./{executable.name}")
    return 0


async def _cmd_js(args) -> int:
    path = validate_agda_file(args.path)
    out_dir = await compile_js(path, agda=args.agda)
    print(f"Successfully compiled {args.path} to {out_dir.name}/")
    print("You can now:")
    print(f"1. cd {out_dir.name}")
    print("2. npm install")
    print("3. node main.js")
    return 0


async def _dispatch(args) -> int:
    if args.command == "check":
        return await _cmd_check(args, evaluate=False)
    if args.command == "run":
        return await _cmd_check(args, evaluate=True)
    if args.command == "checkAll":
        return await _cmd_check_all(args)
    if args.command == "compile":
        return await _cmd_compile(args)
    if args.command == "js":
        return await _cmd_js(args)
    raise UsageError(f"Invalid command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for agda-cli."""
    import argparse
    import logging

    class _Parser(argparse.ArgumentParser):
        # Usage errors exit 1 like every other failure
        def error(self, message):
            self.print_usage(sys.stderr)
            print(f"{self.prog}: error: {message}", file=sys.stderr)
            sys.exit(1)

    parser = _Parser(prog="agda-cli", description="Agda check/run front-end and MCP server")
    parser.add_argument("--agda", default=None, help="Agda executable (default: $AGDA or 'agda')")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", parser_class=_Parser)

    for name, help_text in (("check", "Type-check a file and show its holes"),
                            ("run", "Check a file and evaluate main")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("path", nargs="?", help="File to check (.agda)")
        sub.add_argument("--text", action="store_true", help="Use the Emacs-style (--interaction) dialect")
        sub.add_argument("--interactive", action="store_true", help="Request live highlighting output")
        sub.add_argument("-q", "--quiet", action="store_true", help="Don't forward Agda's stderr")

    check_all_parser = subparsers.add_parser("checkAll", help="Check every .agda file under a directory")
    check_all_parser.add_argument("path", nargs="?", help="Directory to walk")
    check_all_parser.add_argument("--text", action="store_true", help=argparse.SUPPRESS)

    compile_parser = subparsers.add_parser("compile", help="Compile a file to an executable")
    compile_parser.add_argument("path", nargs="?", help="File to compile (.agda)")
    compile_parser.add_argument("--run", action="store_true", help="Run the executable afterwards")

    js_parser = subparsers.add_parser("js", help="Compile a file to a CommonJS package")
    js_parser.add_argument("path", nargs="?", help="File to compile (.agda)")

    serve_parser = subparsers.add_parser("serve", help="Run the MCP server")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    serve_parser.add_argument("--port", type=int, default=8000, help="Port for HTTP/SSE (default: 8000)")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host for HTTP/SSE (default: 127.0.0.1)")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    if args.command is None:
        parser.print_usage(sys.stderr)
        return 1

    if args.command == "serve":
        if args.transport == "stdio":
            mcp.run(show_banner=False)
        else:
            print(f"Agda MCP server starting on {args.host}:{args.port} ({args.transport})", file=sys.stderr)
            mcp.run(transport=args.transport, host=args.host, port=args.port, show_banner=False)
        return 0

    if args.command == "checkAll" and not args.path:
        print("Usage: agda-cli checkAll <directory>", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_dispatch(args))
    except UsageError as e:
        usage = "<directory>" if args.command == "checkAll" else "<file.agda>"
        print(f"{e}\nUsage: agda-cli {args.command} {usage}", file=sys.stderr)
        return 1
    except AgdaError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
