"""
pathdraw: command and parse records

Each endpoint lookup runs a handful of commands (route, interface,
neighbor). Every one leaves a CommandRecord with its exit status and
what its parser made of the output, so an "empty" neighbor or a missing
route traces back to the exact text the host printed.

  stdout          the drawing only
  -v, --debug     lookup progress on stderr
  --log FILE      JSON dump of every record, debug log in FILE.log
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Any, Callable
import json
import logging


class CommandStatus(Enum):
    SUCCESS = "success"             # exit 0, got output
    EMPTY = "empty"                 # exit 0, no output
    ERROR = "error"                 # non-zero exit
    NOT_FOUND = "not-found"         # binary missing from PATH


class ParseResult(Enum):
    OK = "ok"                       # parsed successfully
    NO_MATCH = "no-match"           # pattern/keyword not found in output
    EMPTY_INPUT = "empty-input"     # nothing to parse
    EXCEPTION = "exception"         # parser threw
    SKIPPED = "skipped"             # command failed, parser not run


@dataclass
class CommandRecord:
    """Complete record of a single command execution."""
    endpoint: str                       # address being resolved
    platform: str
    command: str
    timestamp: datetime = field(default_factory=datetime.now)

    # What happened
    status: CommandStatus = CommandStatus.SUCCESS
    return_code: Optional[int] = None
    raw_output: str = ""                # FULL stdout, unmodified
    error_message: str = ""             # stderr or exception text
    duration_ms: Optional[float] = None

    # Parsing
    parser_used: str = ""
    parse_result: ParseResult = ParseResult.SKIPPED
    parse_detail: str = ""
    extracted_data: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "platform": self.platform,
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "return_code": self.return_code,
            "raw_output_lines": len(self.raw_output.splitlines()),
            "raw_output": self.raw_output,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
            "parser_used": self.parser_used,
            "parse_result": self.parse_result.value,
            "parse_detail": self.parse_detail,
            "extracted_data": self.extracted_data,
        }


@dataclass
class ResolveDiagnostic:
    """All command records for resolving a single endpoint."""
    endpoint: str
    role: str                           # "source" or "destination"
    commands: list[CommandRecord] = field(default_factory=list)
    outcome: str = ""                   # one-line summary once resolved
    warnings: list[str] = field(default_factory=list)

    def failed_commands(self) -> list[CommandRecord]:
        return [c for c in self.commands
                if c.status not in (CommandStatus.SUCCESS, CommandStatus.EMPTY)]

    def parse_failures(self) -> list[CommandRecord]:
        return [c for c in self.commands if c.parse_result not in (
            ParseResult.OK, ParseResult.SKIPPED
        )]

    def to_dict(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "role": self.role,
            "commands": [c.to_dict() for c in self.commands],
            "command_summary": {
                "total": len(self.commands),
                "failed": len(self.failed_commands()),
                "parse_failures": len(self.parse_failures()),
            },
            "outcome": self.outcome,
            "warnings": self.warnings,
        }


@dataclass
class RunDiagnostic:
    """Complete diagnostic record for one source/destination lookup."""
    source: str
    destination: str
    platform: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    endpoints: list[ResolveDiagnostic] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "destination": self.destination,
            "platform": self.platform,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "summary": {
                "total_commands": sum(len(e.commands) for e in self.endpoints),
                "failed_commands": sum(len(e.failed_commands()) for e in self.endpoints),
                "parse_failures": sum(len(e.parse_failures()) for e in self.endpoints),
            },
            "endpoints": [e.to_dict() for e in self.endpoints],
            "error": self.error,
        }

    def dump_json(self, path: str):
        """Write full diagnostic to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)


def setup_logging(
    log_file: Optional[str] = None,
    debug: bool = False,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure logging for one run.

    - log_file: write debug-level to file
    - debug: debug-level to stderr
    - verbose: info-level to stderr

    Python warnings (UnresolvedNeighborWarning) are routed into the
    same handlers.
    """
    logger = logging.getLogger("pathdraw")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if log_file:
        fh = logging.FileHandler(log_file + ".log", mode="w")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    if debug or verbose:
        sh = logging.StreamHandler()
        sh.setLevel(logging.DEBUG if debug else logging.INFO)
        sh.setFormatter(formatter)
        logger.addHandler(sh)

    # Library use without -v/--debug/--log stays silent
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logging.captureWarnings(True)
    warnings_logger = logging.getLogger("py.warnings")
    warnings_logger.handlers.clear()
    warnings_logger.propagate = False
    for handler in logger.handlers:
        warnings_logger.addHandler(handler)

    return logger


def parse_with_diagnostics(
    record: CommandRecord,
    parser_func: Callable[[str], Any],
    parser_name: str = "unknown",
    logger: Optional[logging.Logger] = None,
) -> Any:
    """
    Run parser_func over record.raw_output and annotate the record.

    Returns the parsed result, or None if parsing failed. Never raises.
    """
    record.parser_used = parser_name
    raw_output = record.raw_output

    if not raw_output or not raw_output.strip():
        record.parse_result = ParseResult.EMPTY_INPUT
        record.parse_detail = "Empty or whitespace-only output"
        if logger:
            logger.debug(f"[{record.endpoint}] Empty output for: {record.command}")

    try:
        result = parser_func(raw_output)
    except Exception as e:
        record.parse_result = ParseResult.EXCEPTION
        record.parse_detail = f"{type(e).__name__}: {e}"
        if logger:
            logger.error(
                f"[{record.endpoint}] Parser exception: {record.command}\n"
                f"  Parser: {parser_name}\n"
                f"  Exception: {type(e).__name__}: {e}\n"
                f"  Output:\n{_indent(raw_output[:500])}"
            )
        return None

    if result is None:
        if record.parse_result != ParseResult.EMPTY_INPUT:
            record.parse_result = ParseResult.NO_MATCH
            record.parse_detail = "Parser returned None"
            if logger:
                logger.warning(
                    f"[{record.endpoint}] Parse returned None for: {record.command}\n"
                    f"  Parser: {parser_name}\n"
                    f"  Output ({len(raw_output)} chars):\n"
                    f"{_indent(raw_output[:500])}"
                )
        return None

    record.parse_result = ParseResult.OK
    record.parse_detail = ""
    record.extracted_data = (
        result if isinstance(result, dict) else {"_repr": repr(result)}
    )
    if logger:
        logger.debug(f"[{record.endpoint}] Parsed OK: {record.command} → {parser_name}")
    return result


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def dump_resolve_summary(diag: ResolveDiagnostic) -> str:
    """One-line summary for verbose output."""
    failed = len(diag.failed_commands())
    outcome = diag.outcome or "unresolved"
    return (
        f"{diag.role} {diag.endpoint} | "
        f"{len(diag.commands)} commands, {failed} failed → {outcome}"
    )


def dump_run_summary(diag: RunDiagnostic) -> str:
    """Full run summary for terminal or report output."""
    lines = [
        f"pathdraw: {diag.source} → {diag.destination} ({diag.platform})",
        f"{'─' * 50}",
    ]
    for endpoint in diag.endpoints:
        lines.append(dump_resolve_summary(endpoint))
        for warning in endpoint.warnings:
            lines.append(f"  ⚠ {warning}")

    s = diag.to_dict()["summary"]
    lines.append(f"{'─' * 50}")
    lines.append(
        f"Commands: {s['total_commands']} | "
        f"Failed: {s['failed_commands']} | "
        f"Parse errors: {s['parse_failures']}"
    )
    return "\n".join(lines)
