import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "StudIP Python Library"
DEFAULT_LOGIN_URL = "https://studip.uni-passau.de/studip/index.php?again=yes&sso=shib"
DEFAULT_LOGGED_IN_URL_PREFIX = "https://studip.uni-passau.de/studip/dispatch.php"
DEFAULT_API_BASE_URL = "https://studip.uni-passau.de/studip/api.php/"


class Config:
    """Endpoints and identification used by the session and the api

    The defaults point to Stud.IP at the University of Passau. Tests and other
    installations pass their own values.
    """

    keys = ("login_url", "logged_in_url_prefix", "api_base_url", "user_agent")

    def __init__(
        self,
        login_url: str = DEFAULT_LOGIN_URL,
        logged_in_url_prefix: str = DEFAULT_LOGGED_IN_URL_PREFIX,
        api_base_url: str = DEFAULT_API_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.login_url = login_url
        self.logged_in_url_prefix = logged_in_url_prefix
        self.api_base_url = api_base_url
        self.user_agent = user_agent

    def __repr__(self):
        return (
            f"Config(login_url={self.login_url}, "
            f"logged_in_url_prefix={self.logged_in_url_prefix}, "
            f"api_base_url={self.api_base_url}, user_agent={self.user_agent})"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        return cls(**{k: data[k] for k in cls.keys if data.get(k)})

    def api_url(self, path: str) -> str:
        return self.api_base_url.rstrip("/") + "/" + path.lstrip("/")


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Build a Config from json files

    An explicit path is used on its own. Otherwise the global config in
    $XDG_CONFIG_HOME/studip/config.json is read first and a config.json in the
    working directory overrides it.
    """
    config: Dict[str, Any] = {}

    if path:
        overwrite_config = Path(path)
        with overwrite_config.open() as f:
            config.update(json.load(f))
    else:
        global_config = (
            Path(os.environ.get("XDG_CONFIG_HOME", Path("~/.config").expanduser()))
            / "studip"
            / "config.json"
        )
        local_config = Path("config.json")
        for candidate in (global_config, local_config):
            if candidate.is_file():
                logger.debug(f"Reading config from {candidate}")
                with candidate.open() as f:
                    config.update(json.load(f))

    return Config.from_dict(config)
