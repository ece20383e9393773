"""
comply_gateway.api.routers

Route modules mounted by `comply_gateway.api.app`.
"""

# Package marker.
