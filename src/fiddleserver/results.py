"""Result variants returned by the request handlers."""

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class NotFound:
    """Unknown version, missing file or no selectable gist file."""

    reason: str = ""


@dataclass(frozen=True)
class UpstreamError:
    """A remote service failed; its status code is passed through verbatim."""

    status_code: int
    reason: str = ""


@dataclass
class HandlerResponse:
    """A successful handler result, ready to be sent by the HTTP layer."""

    body: Union[bytes, str]
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    media_type: str | None = None


HandlerResult = Union[HandlerResponse, NotFound, UpstreamError]
