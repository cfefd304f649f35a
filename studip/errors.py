from typing import Optional


class StudIPError(Exception):
    """Base class for everything this library raises on its own"""


class StatusCodeError(StudIPError):
    """Raised if a request only failed because of an unexpected status code"""

    def __init__(self, code: int, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg

    def __str__(self) -> str:
        return self.msg


class APIError(StudIPError):
    """Raised if the portal or the SSO pages answered with something unusable

    invalid_login is only set if the identity provider explicitly rejected the
    credentials, so callers can tell "wrong password" apart from "site broken".
    """

    def __init__(
        self,
        msg: str,
        invalid_login: bool = False,
        parent: Optional[BaseException] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(msg)
        self.msg = msg
        self.invalid_login = invalid_login
        self.parent = parent
        self.detail = detail

    def __str__(self) -> str:
        return self.msg


class DecodeError(StudIPError, ValueError):
    """Raised if the document tree could not be decoded"""
