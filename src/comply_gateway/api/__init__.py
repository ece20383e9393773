"""
comply_gateway.api

API package for the gateway.

Responsibilities:
- FastAPI app factory and router modules.
- Shared request pipeline (validation, forwarding, error mapping).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: validation + delegation to the backend client.
