"""
Triggers — how endpoints are exposed.

    from emporium.wire.triggers.http import HTTPRouteTrigger

    http = HTTPRouteTrigger("POST", "/api/orders/cancel")
"""

from emporium.wire.triggers import http

__all__ = ("http",)
