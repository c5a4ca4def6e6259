from collections.abc import Awaitable, Callable
from typing import Any

from kungfu import Result

from emporium.wire.codecs.rrc import RequestResponseCodec
from emporium.wire.triggers.http import HTTPRouteTrigger

type Handler = Callable[[Any], Awaitable[Result[Any, Any]]]
type Trigger = HTTPRouteTrigger
type Codec = RequestResponseCodec
type Exposure = tuple[Trigger, Codec]
