"""
Optidash client implementation.

This module contains the Client class, the entry point for building
requests. For usage examples, see the package docstring: help(optidash)
"""

import io
import os
from typing import Union, BinaryIO

import requests

from .exceptions import InvalidSourceTypeError, OptidashConfigError
from .__version__ import __version__
from .request import Request, Source

API_URL = "https://api.optidash.ai/1.0"


class Client:
    """
    Optidash API client.

    Args:
        api_key: Your Optidash API key
        base_url: Base URL of the API (default: https://api.optidash.ai/1.0)
        timeout: Request timeout in seconds (default: 30)
        session: Optional requests.Session shared by all requests

    Raises:
        OptidashConfigError: If the API key is empty
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = API_URL,
        timeout: int = 30,
        session: requests.Session = None,
    ):
        if not api_key:
            raise OptidashConfigError("optidash: Invalid configuration, API key is empty")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": f"optidash-python/{__version__}"})
        self.session = session

    def upload(self, source: Union[str, os.PathLike, bytes, BinaryIO]) -> Request:
        """
        Start a request that uploads an image.

        Args:
            source: Path to an image file (opened when the request is sent),
                a file-like object, or raw bytes

        Returns:
            A new Request builder

        Raises:
            InvalidSourceTypeError: If source is none of the above

        Example:
            >>> meta = client.upload("photo.jpg").optimize().to_json()
        """
        if isinstance(source, (str, os.PathLike)):
            return Request(self, Source.PATH, location=os.fspath(source))
        if isinstance(source, (bytes, bytearray)):
            return Request(self, Source.READER, reader=io.BytesIO(source))
        if hasattr(source, "read"):
            return Request(self, Source.READER, reader=source)

        raise InvalidSourceTypeError(
            f"optidash: Invalid request source type: {type(source).__name__}"
        )

    def fetch(self, url: str) -> Request:
        """
        Start a request for an image the API downloads from ``url``.

        Example:
            >>> client.fetch("https://example.com/a.jpg").to_file("a.jpg")
        """
        return Request(self, Source.FETCH, location=url)
