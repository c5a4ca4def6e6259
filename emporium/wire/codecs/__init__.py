"""
Codecs — convert transport payloads to domain inputs and results back.

    from emporium.wire.codecs import RequestResponseCodec

    # class Request(BaseModel): def to_domain(self) -> ...
    # class Response(BaseModel): @classmethod def from_domain(cls, result) -> ...
    # codec = RequestResponseCodec(Request, Response)
"""

from emporium.wire.codecs.rrc import (
    RequestResponseCodec,
    ToDomain,
    FromDomain,
    HasStatus,
)

__all__ = (
    "RequestResponseCodec",
    "ToDomain",
    "FromDomain",
    "HasStatus",
)
