"""
comply_gateway.services

Service-layer helpers that sit between routers and the backend boundary.
"""

# Package marker.
