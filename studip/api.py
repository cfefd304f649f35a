import logging
from contextlib import closing
from pathlib import Path
from typing import Mapping, Optional, Union
from urllib.parse import quote

import requests
from tqdm import tqdm

from studip.config import Config
from studip.documenttree import DocumentTree
from studip.errors import DecodeError, StatusCodeError
from studip.session import Session, is_success

logger = logging.getLogger(__name__)

DOCUMENT_TREE_PATH = "studip-client-core/documenttree/"
FILE_CONTENT_PATH = "file/{file_id}/content"


class API:
    """Stud.IP REST api on top of a logged in Session"""

    block_size = 1024

    def __init__(
        self,
        session: Optional[Session] = None,
        transport: Optional[requests.Session] = None,
        config: Optional[Config] = None,
        header: Optional[Mapping[str, str]] = None,
    ) -> None:
        if session is None:
            session = Session(transport=transport, config=config, header=header)
        self.session = session

    @property
    def config(self) -> Config:
        return self.session.config

    def login(self, username: str, password: str) -> None:
        self.session.login(username, password)

    def document_tree(self) -> DocumentTree:
        """All semesters with their courses, folders and files

        Raises a StatusCodeError for anything but 2xx and a DecodeError if the
        body is not a document tree.
        """
        url = self.config.api_url(DOCUMENT_TREE_PATH)
        with closing(self.session.get(url)) as resp:
            if not is_success(resp):
                raise StatusCodeError(
                    resp.status_code, f"Invalid status code: {resp.status_code}"
                )
            try:
                data = resp.json()
            except ValueError as e:
                raise DecodeError(f"Could not decode document tree: {e}") from e
        return DocumentTree.from_json(data)

    def get_file(self, file_id: str) -> requests.Response:
        """Streaming response with the contents of a file

        The caller has to close the response, e.g. by using it in a with
        statement.
        """
        # ids must not be able to leave the path segment
        path = FILE_CONTENT_PATH.format(file_id=quote(file_id, safe=""))
        url = self.config.api_url(path)
        resp = self.session.get(url, stream=True)
        if not is_success(resp):
            resp.close()
            raise StatusCodeError(
                resp.status_code, f"Invalid status code: {resp.status_code}"
            )
        return resp

    def save_file(
        self, file_id: str, path: Union[str, Path], progress: bool = False
    ) -> int:
        """Download a file to path and return the number of bytes written

        The download goes to a .temp file next to path first, which is only
        renamed once the download is complete.
        """
        downloadpath = Path(path)
        tmp_downloadpath = downloadpath.with_suffix(downloadpath.suffix + ".temp")
        written = 0

        with closing(self.get_file(file_id)) as response:
            logger.debug(f"Downloading {file_id} to {downloadpath}")
            total_size_in_bytes = int(response.headers.get("content-length", 0))
            downloadpath.parent.mkdir(parents=True, exist_ok=True)
            progress_bar = tqdm(
                total=total_size_in_bytes,
                unit="iB",
                unit_scale=True,
                disable=not progress,
            )
            try:
                with tmp_downloadpath.open("wb") as file:
                    for data in response.iter_content(self.block_size):
                        progress_bar.update(len(data))
                        file.write(data)
                        written += len(data)
            except BaseException:
                tmp_downloadpath.unlink(missing_ok=True)
                raise
            finally:
                progress_bar.close()
            tmp_downloadpath.replace(downloadpath)
        return written
