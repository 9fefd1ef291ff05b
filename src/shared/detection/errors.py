from __future__ import annotations

from typing import Optional


class DetectionError(Exception):
    """Base class for failures raised while detecting media candidates."""


class ProbeError(DetectionError):
    """
    A file-size probe could not produce a content length.

    Attributes:
        url: The probed URL.
        status_code: HTTP status code, when the server answered at all.
    """

    def __init__(self, message: str, *, url: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
