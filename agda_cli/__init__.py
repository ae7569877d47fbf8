"""Agda check/run front-end and MCP server."""

from .agda_file_parser import Hole, SourceRange, scan_holes, scan_file, parse_location
from .agda_session import AgdaSession, AGDA_BIN, AgdaError, AgdaNotFoundError, ProcessError, UsageError, Dialect
from .agda_checker import AgdaChecker, CheckMode, CheckRequest, CheckReport, check_all
from .agda_mcp_server import mcp, main

__all__ = [
    "Hole", "SourceRange", "scan_holes", "scan_file", "parse_location",
    "AgdaSession", "AGDA_BIN", "AgdaError", "AgdaNotFoundError", "ProcessError", "UsageError", "Dialect",
    "AgdaChecker", "CheckMode", "CheckRequest", "CheckReport", "check_all",
    "mcp", "main",
]
