from typing import Self

from emporium.wire._endpoint import Endpoint


class Application:
    def __init__(self, title: str = "emporium") -> None:
        self.title = title
        self.endpoints: list[Endpoint] = []

    def mount(self, *endps: Endpoint) -> Self:
        self.endpoints.extend(endps)
        return self


def application(title: str = "emporium") -> Application:
    return Application(title)
