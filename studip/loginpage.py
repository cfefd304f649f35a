"""Extraction of the login artifacts from the SSO pages

The handshake in studip.session only talks to a LoginPageParser, so the way
the markup is matched can be swapped without touching the state machine.
"""

import html
import re
from typing import List, NamedTuple, Optional, Tuple

from bs4 import BeautifulSoup as bs

from studip.errors import APIError

# Anchors separated by lazy gaps, matched across newlines. Each anchor is
# searched from the end of the previous one instead of one backtracking
# pattern, which keeps pages without a match linear.
SAML_FORM_STEPS = [
    re.compile(r"form"),
    re.compile(r'action="([^"]+)"'),
    re.compile(r"input"),
    re.compile(r'name="([^"]+)"'),
    re.compile(r'value="([^"]+)"'),
    re.compile(r"input"),
    re.compile(r'name="([^"]+)"'),
    re.compile(r'value="([^"]+)"'),
]
LOGIN_FORM_STEPS = [
    re.compile(r"input"),
    re.compile(r'name="j_username"'),
    re.compile(r"input"),
    re.compile(r'name="j_password"'),
]
INVALID_LOGIN_STEPS = [
    re.compile(r"loginerror-body"),
    re.compile(r">([^<]+)<"),
]


def scan(body: str, steps) -> Optional[List[str]]:
    """Match steps one after another and return their groups or None

    A later step can only match less from a later position, so taking the
    earliest match of every step never misses a match.
    """
    groups: List[str] = []
    pos = 0
    for step in steps:
        match = step.search(body, pos)
        if match is None:
            return None
        groups.extend(match.groups())
        pos = match.end()
    return groups


class SAMLForm(NamedTuple):
    action: str
    fields: Tuple[Tuple[str, str], Tuple[str, str]]

    def data(self):
        return list(self.fields)


def build_saml_form(groups, unescape: bool = True) -> SAMLForm:
    if len(groups) < 5 or not all(groups[:5]):
        raise APIError("Could not parse SAML Response form")
    if unescape:
        groups = [html.unescape(g) for g in groups]
    action, name1, value1, name2, value2 = groups[:5]
    return SAMLForm(action, ((name1, value1), (name2, value2)))


class LoginPageParser:
    def has_login_form(self, body: str) -> bool:
        raise NotImplementedError

    def find_saml_form(self, body: str) -> Optional[SAMLForm]:
        """Return the SAML continuation form or None if there is none

        Raises an APIError if a form was found but could not be parsed.
        """
        raise NotImplementedError

    def find_login_error(self, body: str) -> Optional[str]:
        """Return the trimmed invalid-login message of the identity provider"""
        raise NotImplementedError


class RegexLoginPageParser(LoginPageParser):
    """Structural matching with regular expressions

    Only the first form with exactly two name/value pairs after its action is
    recognized, additional hidden fields are ignored.
    """

    def has_login_form(self, body: str) -> bool:
        return scan(body, LOGIN_FORM_STEPS) is not None

    def find_saml_form(self, body: str) -> Optional[SAMLForm]:
        groups = scan(body, SAML_FORM_STEPS)
        if groups is None:
            return None
        return build_saml_form(groups)

    def find_login_error(self, body: str) -> Optional[str]:
        groups = scan(body, INVALID_LOGIN_STEPS)
        if groups is None:
            return None
        return groups[0].strip()


class SoupLoginPageParser(LoginPageParser):
    """Matching on the parsed document with BeautifulSoup"""

    def __init__(self, features: str = "lxml") -> None:
        self.features = features

    def _soup(self, body: str):
        return bs(body, features=self.features)

    def has_login_form(self, body: str) -> bool:
        soup = self._soup(body)
        username = soup.find("input", {"name": "j_username"})
        if username is None:
            return False
        return username.find_next("input", {"name": "j_password"}) is not None

    def find_saml_form(self, body: str) -> Optional[SAMLForm]:
        soup = self._soup(body)
        for form in soup.find_all("form", action=True):
            # empty values never carry the SAML response, e.g. the login
            # form on the error page of the IdP
            inputs = [
                i
                for i in form.find_all("input", attrs={"name": True, "value": True})
                if i["name"] and i["value"]
            ][:2]
            if len(inputs) == 2:
                break
        else:
            return None
        groups = [form["action"]]
        for i in inputs:
            groups += [i["name"], i["value"]]
        # bs4 already unescaped the attributes
        return build_saml_form(groups, unescape=False)

    def find_login_error(self, body: str) -> Optional[str]:
        soup = self._soup(body)
        error = soup.find(class_="loginerror-body")
        if error is None:
            return None
        text = error.get_text(" ", strip=True)
        return text or None
