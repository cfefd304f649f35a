import logging
from enum import Enum
from typing import Any, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

from studip.config import Config
from studip.errors import APIError, StatusCodeError
from studip.loginpage import LoginPageParser, RegexLoginPageParser

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

logger = logging.getLogger(__name__)


def is_success(response) -> bool:
    return 200 <= response.status_code < 300


class LoginState(Enum):
    PROBING = "probing"
    AWAITING_CREDENTIAL_SUBMIT = "awaiting credential submit"
    AWAITING_SAML_EXTRACTION = "awaiting SAML extraction"
    RELAYING_SAML = "relaying SAML"
    VERIFIED = "verified"
    FAILED = "failed"


class Session:
    """Logs a requests session into Stud.IP via the Shibboleth SSO

    The transport is owned by the caller. Everything the login leaves behind
    lives in its cookie jar, so the same transport has to be used for the api
    afterwards.
    """

    def __init__(
        self,
        transport: Optional[requests.Session] = None,
        config: Optional[Config] = None,
        header: Optional[Mapping[str, str]] = None,
        parser: Optional[LoginPageParser] = None,
    ) -> None:
        self.transport = transport if transport is not None else requests.Session()
        self.config = config or Config()
        self.header = header
        self.parser = parser or RegexLoginPageParser()

    def headers(self, extra: Optional[Mapping[str, str]] = None) -> CaseInsensitiveDict:
        """Header set for a single request

        The caller's header set is copied, never changed, and only gets the
        default user agent if it does not already name one.
        """
        headers = CaseInsensitiveDict(self.header or {})
        if not headers.get("User-Agent"):
            headers["User-Agent"] = self.config.user_agent
        if extra:
            headers.update(extra)
        return headers

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = self.headers(kwargs.pop("headers", None))
        logger.debug(f"{method} {url}")
        return self.transport.request(method, url, headers=headers, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post_form(self, url: str, data: Any) -> requests.Response:
        return self.request(
            "POST", url, data=data, headers={"Content-Type": FORM_CONTENT_TYPE}
        )

    def is_logged_in(self, response: requests.Response) -> bool:
        return bool(response.url) and str(response.url).startswith(
            self.config.logged_in_url_prefix
        )

    def login(self, username: str, password: str) -> None:
        """Perform the full SAML authentication

        Returns if the transport is logged in afterwards, raises a
        StatusCodeError, an APIError or the transport's own exception otherwise.
        """
        LoginHandshake(self, username, password).run()


class LoginHandshake:
    """One walk through the SSO redirect chain, portal to IdP and back"""

    def __init__(self, session: Session, username: str, password: str) -> None:
        self.session = session
        self.username = username
        self.password = password
        self.state = LoginState.PROBING
        self.failed_state: Optional[LoginState] = None

    def run(self) -> None:
        try:
            response = self.probe()
            if self.state is LoginState.VERIFIED:
                return
            response = self.submit_credentials(response)
            saml_form = self.extract_saml_form(response)
            response = self.relay_saml(saml_form)
            self.verify(response)
        except Exception:
            self.failed_state = self.state
            self.state = LoginState.FAILED
            raise

    def probe(self) -> requests.Response:
        # Redirects either to studip (already logged in) or to the SSO
        self.state = LoginState.PROBING
        resp = self.session.get(self.session.config.login_url)
        if not is_success(resp):
            raise StatusCodeError(
                resp.status_code,
                f"Initial auth prepare request failed with status code: {resp.status_code}",
            )
        if self.session.is_logged_in(resp):
            logger.debug("Session is still logged in")
            self.state = LoginState.VERIFIED
        return resp

    def submit_credentials(self, login_page: requests.Response) -> requests.Response:
        self.state = LoginState.AWAITING_CREDENTIAL_SUBMIT
        if not self.session.parser.has_login_form(login_page.text):
            raise APIError("Could not find login form")

        # The IdP hands out a session specific url, post to the end of the
        # redirect chain instead of the login url.
        auth_url = str(login_page.url)
        logger.debug("Submitting credentials to the identity provider")
        resp = self.session.post_form(
            auth_url, {"j_username": self.username, "j_password": self.password}
        )
        if not is_success(resp):
            raise StatusCodeError(
                resp.status_code,
                f"Auth request failed with status code: {resp.status_code}",
            )
        return resp

    def extract_saml_form(self, auth_response: requests.Response):
        self.state = LoginState.AWAITING_SAML_EXTRACTION
        body = auth_response.text
        saml_form = self.session.parser.find_saml_form(body)
        if saml_form is not None:
            return saml_form

        error = self.session.parser.find_login_error(body)
        if error is not None:
            raise APIError(f"Invalid login: {error}", invalid_login=True, detail=error)
        raise APIError("Could not finalize SAML Authentication, System down?")

    def relay_saml(self, saml_form) -> requests.Response:
        self.state = LoginState.RELAYING_SAML
        logger.debug(f"Relaying SAML response to {saml_form.action}")
        resp = self.session.post_form(saml_form.action, saml_form.data())
        if not is_success(resp):
            raise StatusCodeError(
                resp.status_code,
                f"SAML Response request failed with status code: {resp.status_code}",
            )
        return resp

    def verify(self, response: requests.Response) -> None:
        if not self.session.is_logged_in(response):
            raise APIError("Not redirected to studip after login")
        self.state = LoginState.VERIFIED
