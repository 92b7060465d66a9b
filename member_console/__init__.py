"""
Backend package for the member console.

This package provides a FastAPI application, an import worker and the
store/queue/platform abstractions they share, so member administration
across several headless sites runs as a long-lived service instead of
browser-side loops.
"""
