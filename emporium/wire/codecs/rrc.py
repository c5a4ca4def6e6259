from dataclasses import dataclass
from typing import Any, Protocol

from kungfu import Result


class ToDomain[DomainT](Protocol):
    def to_domain(self) -> DomainT: ...


class FromDomain[DomainT](Protocol):
    @classmethod
    def from_domain(cls, dom: DomainT) -> "FromDomain[DomainT]": ...


class HasStatus(Protocol):
    def status_code(self) -> int: ...


@dataclass(frozen=True, slots=True)
class RequestResponseCodec:
    """
    Request model -> domain input, domain Result -> response model.

    A response that defines `status_code()` sets the HTTP status.
    """

    request: type[ToDomain[Any]]
    response: type[FromDomain[Result[Any, Any]]]
