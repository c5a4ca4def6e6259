"""
Wire — expose async domain handlers via triggers and codecs.

    from emporium.wire import endpoint, Application
    from emporium.wire.triggers.http import HTTPRouteTrigger
    from emporium.wire.codecs.rrc import RequestResponseCodec

    endp = endpoint(processor.process).expose(
        HTTPRouteTrigger("POST", "/api/payments/confirmation"),
        RequestResponseCodec(ConfirmationIn, ConfirmationOut),
    )
    app = Application().mount(endp)
"""

from emporium.wire._endpoint import Endpoint, endpoint
from emporium.wire._app import Application, application
from emporium.wire._types import Handler, Trigger, Codec, Exposure
from emporium.wire.codecs.rrc import RequestResponseCodec
from emporium.wire.triggers.http import HTTPRouteTrigger, Method, Path
from emporium.wire import codecs, triggers, contrib

__all__ = (
    "Endpoint",
    "endpoint",
    "Application",
    "application",
    "Handler",
    "Trigger",
    "Codec",
    "Exposure",
    "RequestResponseCodec",
    "HTTPRouteTrigger",
    "Method",
    "Path",
    "codecs",
    "triggers",
    "contrib",
)
