from dataclasses import dataclass
from typing import Literal

type Method = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
type Path = str


@dataclass(frozen=True, slots=True)
class HTTPRouteTrigger:
    method: Method
    path: Path
    summary: str | None = None
