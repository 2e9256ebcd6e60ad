"""dircache - build directory caching for CI jobs.

This package provides tools for:
- Signing time-limited object-storage URLs (AWS v2 and v4 signatures)
- Planning cache fetch/add/push steps with a branch fallback cascade
- Rendering those plans as shell scripts for the cache client
"""

__version__ = "0.1.0"
