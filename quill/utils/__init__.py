"""
Shared utilities for QUILL.

Common functionality used across contexts:
- Logger setup and provenance
- Render event log
- PDF rasterization
- Timestamps
"""

from quill.utils.timestamp import now, now_exact

__all__ = ["now", "now_exact"]
