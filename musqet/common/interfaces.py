"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Any, Protocol


class IHttpResponse(Protocol):
    """The slice of a response object the collaborators read."""

    status_code: int
    text: str

    def json(self) -> Any: ...


class IHttpSession(Protocol):
    """Anything with a requests-style ``request`` method.

    ``requests.Session`` satisfies it in production; tests pass a
    ``fastapi.testclient.TestClient`` or a mock.
    """

    def request(self, method: str, url: str, **kwargs: Any) -> IHttpResponse: ...


class IStatusListener(Protocol):
    """Callback invoked synchronously with each status string."""

    def __call__(self, status: str) -> None: ...
