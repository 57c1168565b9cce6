"""Retry-wrapped I/O collaborators used by flow steps."""

from m7m.io.files import append_line, read_text_file
from m7m.io.http import HttpClient
from m7m.io.retry import call_with_retries

__all__ = ["HttpClient", "append_line", "call_with_retries", "read_text_file"]
