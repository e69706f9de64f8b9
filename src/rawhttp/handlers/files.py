"""
=============================================================================
FILE STORAGE HANDLER
=============================================================================

GET and POST /files/<name> against a storage directory.

    POST /files/report.txt  body=b"..."   →  writes <directory>/report.txt
                                             201 Created

    GET  /files/report.txt                →  200 OK
                                             Content-Type: application/octet-stream
                                             Content-Length: <size>
                                             <file bytes>

=============================================================================
STORAGE RULES
=============================================================================

- The directory is fixed when the handler is built and never changes.
- The handler never creates the directory. Writing into a directory that
  does not exist fails like any other write failure (500).
- POST overwrites. Concurrent writers to the same name race; whichever
  write lands last wins and the write is not atomic.
- Names are used verbatim: no URL decoding and no path sanitization. A
  name containing "../" reaches outside the directory. Only run this
  server where every client is trusted with the whole file system the
  process can reach.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    created,
    internal_error,
    not_found,
)
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


OCTET_STREAM = "application/octet-stream"


class FileStore:
    """
    A flat store of named byte blobs, one plain file per name.

        store = FileStore("/tmp/data")
        store.write("a.bin", b"\\x00\\x01")
        store.read("a.bin")     # b"\\x00\\x01"
        store.read("missing")   # None
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / name

    def read(self, name: str) -> Optional[bytes]:
        """
        File contents, or None if there is no regular file by that name.

        Raises:
            OSError: If the file exists but cannot be read.
        """
        path = self.path_for(name)
        if not path.is_file():
            return None
        return path.read_bytes()

    def write(self, name: str, data: bytes) -> None:
        """
        Create or overwrite a file.

        Raises:
            OSError: If the write fails (missing directory, permissions,
                     name refers to a directory, ...).
        """
        self.path_for(name).write_bytes(data)


class FileHandler:
    """
    Route handlers for /files/*filename.

        files = FileHandler(directory)
        router.add_route("/files/*filename", files.write, method="POST")
        router.add_route("/files/*filename", files.read, method="GET")

    With directory=None storage is disabled: reads answer 404 and writes
    answer 500.
    """

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        self.store = FileStore(directory) if directory is not None else None

    def _filename(self, request: HTTPRequest) -> str:
        return request.path_params.get("filename", "")

    def read(self, request: HTTPRequest) -> HTTPResponse:
        """GET: 200 with the file bytes, or 404 if absent."""
        if self.store is None:
            return not_found()

        name = self._filename(request)

        try:
            content = self.store.read(name)
        except OSError as e:
            logger.error(f"Error reading file {name!r}: {e}")
            return internal_error("Failed to read file")

        if content is None:
            return not_found()

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text(content, OCTET_STREAM)
            .build())

    def write(self, request: HTTPRequest) -> HTTPResponse:
        """POST: store the request body, 201 on success, 500 on failure."""
        if self.store is None:
            logger.error("POST /files/ with no storage directory configured")
            return internal_error("No storage directory configured")

        name = self._filename(request)

        try:
            self.store.write(name, request.body)
        except OSError as e:
            logger.error(f"Error writing file {name!r}: {e}")
            return internal_error("Failed to write file")

        logger.debug(f"Stored {len(request.body)} bytes as {name!r}")
        return created()
