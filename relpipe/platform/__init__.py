"""Platform abstraction layer: processes, files, HTTP."""

from .files import atomic_write_text, read_text_exact
from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from .process import ExecResult, ProcessExecutionError, ProcessRunner, mask_secrets

__all__ = [
    # files
    "atomic_write_text",
    "read_text_exact",
    # http
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # process
    "ExecResult",
    "ProcessExecutionError",
    "ProcessRunner",
    "mask_secrets",
]
