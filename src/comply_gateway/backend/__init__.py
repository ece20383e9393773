"""
comply_gateway.backend

Backend boundary package.

Responsibilities:
- HTTP client for the Wecan Comply backend.
- Lifecycle manager owning the single shared client instance.
"""

# Package marker.
