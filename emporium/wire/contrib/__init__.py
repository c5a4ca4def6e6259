"""
Contrib — framework integrations.

    from emporium.wire.contrib import fastapi
    fapp = fastapi.from_application(app)
"""

from emporium.wire.contrib import fastapi

__all__ = ("fastapi",)
