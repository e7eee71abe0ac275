from .config import Settings, load_settings
from .errors import (
    BuildFailure,
    CellError,
    CellFailure,
    ConfigurationError,
    PostProcessFailure,
    PublishFailure,
    ReleaseError,
    RunCancelled,
    ToolError,
    ToolNotFound,
    ToolTimeout,
    cell_error_from_exc,
)
from .fs import (
    atomic_write_bytes,
    atomic_write_text,
    ensure_parent,
    safe_unlink,
    tail_lines,
)
from .hashing import sha256_bytes, sha256_file, write_sha256_sum_txt
from .json import atomic_write_json, read_json
from .logging import ILogger, bind, configure_logging, get_logger
from .paths import RunLayout
from .proc import ToolResult, run_tool
from .provenance import RunProvenance, new_run_id
from .time import format_duration_ms, monotonic_ms, utc_now_iso

__all__ = [
    "Settings",
    "load_settings",
    "ReleaseError",
    "ConfigurationError",
    "CellFailure",
    "BuildFailure",
    "PostProcessFailure",
    "PublishFailure",
    "RunCancelled",
    "ToolError",
    "ToolNotFound",
    "ToolTimeout",
    "CellError",
    "cell_error_from_exc",
    "atomic_write_bytes",
    "atomic_write_text",
    "ensure_parent",
    "safe_unlink",
    "tail_lines",
    "sha256_bytes",
    "sha256_file",
    "write_sha256_sum_txt",
    "atomic_write_json",
    "read_json",
    "ILogger",
    "bind",
    "configure_logging",
    "get_logger",
    "RunLayout",
    "ToolResult",
    "run_tool",
    "RunProvenance",
    "new_run_id",
    "format_duration_ms",
    "monotonic_ms",
    "utc_now_iso",
]
