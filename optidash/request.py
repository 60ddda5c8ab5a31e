"""
Optidash request builder.

A ``Request`` is created by ``Client.upload()`` or ``Client.fetch()``,
configured through chained step setters and executed by exactly one of the
terminal methods: ``to_json()``, ``to_stream()``, ``to_file()`` or
``copy_to()``.
"""

import enum
import json
import logging
import mimetypes
import os
import shutil
from typing import Any, BinaryIO, Dict, Iterator, Optional, Tuple

import requests

from .exceptions import (
    BinaryStorageError,
    BinaryWebhookError,
    IncompleteErrorEnvelopeError,
    MissingSuccessError,
    OptidashAPIError,
    RequestAlreadySentError,
)

logger = logging.getLogger(__name__)

# Parameter bag passed verbatim to the API
Params = Dict[str, Any]

STEPS = (
    "optimize",
    "flip",
    "resize",
    "scale",
    "crop",
    "watermark",
    "mask",
    "stylize",
    "adjust",
    "auto",
    "border",
    "padding",
    "store",
    "output",
    "webhook",
    "response",
    "cdn",
)

BINARY_HEADER = "X-Optidash-Binary"
META_HEADER = "X-Optidash-Meta"

CHUNK_SIZE = 64 * 1024


class Source(enum.Enum):
    """Where the image comes from."""

    READER = "reader"
    PATH = "path"
    FETCH = "fetch"


def check_envelope(result: Any) -> Any:
    """
    Validate an API response envelope.

    Returns the envelope untouched when ``success`` is true (or the
    envelope is ``null``), otherwise raises.

    Raises:
        MissingSuccessError: If ``success`` is missing or not a boolean
        IncompleteErrorEnvelopeError: If a failure lacks ``code`` or ``message``
        OptidashAPIError: If the API reported a failure
    """
    if result is None:
        return None

    if not isinstance(result, dict) or not isinstance(result.get("success"), bool):
        raise MissingSuccessError()

    if result["success"]:
        return result

    for field in ("code", "message"):
        if field not in result:
            raise IncompleteErrorEnvelopeError(field)

    code = result["code"]
    if isinstance(code, bool) or not isinstance(code, int):
        code = 0
    message = result["message"]
    if not isinstance(message, str):
        message = ""

    logger.warning("Optidash API error %d: %s", code, message)
    raise OptidashAPIError(code, message)


def _header_text(value: str) -> str:
    """Undo http.client's ISO-8859-1 decoding of a UTF-8 header value."""
    try:
        return value.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return value


class ImageStream:
    """
    Readable binary stream over an open API response.

    The caller owns it and must close it (or use it as a context manager)
    to release the connection.
    """

    def __init__(self, response: requests.Response, chunk_size: int = CHUNK_SIZE):
        self.response = response
        self._chunks = response.iter_content(chunk_size)
        self._buffer = b""
        self.closed = False

    def read(self, size: Optional[int] = -1) -> bytes:
        if self.closed:
            raise ValueError("I/O operation on closed stream")

        if size is None or size < 0:
            data = self._buffer + b"".join(self._chunks)
            self._buffer = b""
            return data

        while len(self._buffer) < size:
            chunk = next(self._chunks, None)
            if chunk is None:
                break
            self._buffer += chunk

        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def __iter__(self) -> Iterator[bytes]:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        if self._buffer:
            data, self._buffer = self._buffer, b""
            yield data
        yield from self._chunks

    def close(self):
        if not self.closed:
            self.response.close()
            self.closed = True

    def __enter__(self) -> "ImageStream":
        return self

    def __exit__(self, *exc):
        self.close()


class Request:
    """
    Builder for a single Optidash API call.

    Every step setter accepts a parameter mapping and/or keyword arguments
    and replaces whatever was set for that step before. Passing nothing
    (or ``None``) unsets the step. Setters return the builder itself::

        meta = (
            client.fetch("https://example.com/photo.jpg")
            .resize(width=300, height=200, mode="fit")
            .optimize({"compression": "medium"})
            .to_json()
        )

    The accepted parameters are defined by the Optidash API and are not
    validated here.
    """

    def __init__(
        self,
        client,
        source: Source,
        reader: Optional[BinaryIO] = None,
        location: Optional[str] = None,
    ):
        self.client = client
        self.source = source
        self.location = location
        self._reader = reader
        self._session = client.session
        self._timeout = client.timeout
        self._steps: Dict[str, Optional[Params]] = dict.fromkeys(STEPS)
        self._sent = False

    def _set(self, step: str, params: Optional[Params], kwargs: Params) -> "Request":
        if params is None and not kwargs:
            self._steps[step] = None
        else:
            bag = dict(params or {})
            bag.update(kwargs)
            self._steps[step] = bag
        return self

    def optimize(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add an image optimization step."""
        return self._set("optimize", params, kwargs)

    def flip(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add an image flipping step."""
        return self._set("flip", params, kwargs)

    def resize(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add an image resizing step."""
        return self._set("resize", params, kwargs)

    def scale(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add an image scaling step."""
        return self._set("scale", params, kwargs)

    def crop(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add an image cropping step."""
        return self._set("crop", params, kwargs)

    def watermark(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Apply a watermark."""
        return self._set("watermark", params, kwargs)

    def mask(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Apply an elliptical mask."""
        return self._set("mask", params, kwargs)

    def stylize(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Apply a filter."""
        return self._set("stylize", params, kwargs)

    def adjust(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Adjust visual parameters (brightness, contrast...)."""
        return self._set("adjust", params, kwargs)

    def auto(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add an automatic enhancement step."""
        return self._set("auto", params, kwargs)

    def border(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add a border around the image."""
        return self._set("border", params, kwargs)

    def padding(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Add padding around the image."""
        return self._set("padding", params, kwargs)

    def store(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Store the result in external storage. Not allowed with binary responses."""
        return self._set("store", params, kwargs)

    def output(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Set the output format and encoding."""
        return self._set("output", params, kwargs)

    def webhook(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Deliver the result to a webhook. Not allowed with binary responses."""
        return self._set("webhook", params, kwargs)

    def response(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Configure the response (``mode="binary"`` requests a binary body)."""
        return self._set("response", params, kwargs)

    def cdn(self, params: Optional[Params] = None, **kwargs) -> "Request":
        """Configure CDN settings."""
        return self._set("cdn", params, kwargs)

    def http_client(self, session: requests.Session) -> "Request":
        """Replace the session used to execute this request."""
        self._session = session
        return self

    def timeout(self, seconds) -> "Request":
        """Override the client timeout (seconds, or a (connect, read) tuple)."""
        self._timeout = seconds
        return self

    def payload(self) -> Params:
        """Return the JSON document sent to the API."""
        params = {step: bag for step, bag in self._steps.items() if bag is not None}
        if self.source is Source.FETCH:
            params["url"] = self.location
        return params

    def _is_binary(self) -> bool:
        return (self._steps["response"] or {}).get("mode") == "binary"

    def _check_unsent(self):
        if self._sent:
            raise RequestAlreadySentError()

    def _execute(self, stream: bool = False) -> requests.Response:
        """Serialize the request and send it."""
        self._check_unsent()
        self._sent = True

        payload = self.payload()
        body = json.dumps(payload)

        headers = {}
        if self._is_binary():
            headers[BINARY_HEADER] = "1"

        kwargs = {
            "headers": headers,
            "auth": (self.client.api_key, ""),
            "timeout": self._timeout,
            "stream": stream,
        }

        if self.source is Source.FETCH:
            url = f"{self.client.base_url}/fetch"
            headers["Content-Type"] = "application/json"
            logger.debug("POST %s (steps: %s)", url, ", ".join(payload))
            response = self._session.post(url, data=body.encode("utf-8"), **kwargs)
        elif self.source is Source.PATH:
            with open(self.location, "rb") as f:
                response = self._upload(f, os.path.basename(self.location), body, kwargs)
        else:
            name = getattr(self._reader, "name", None)
            filename = os.path.basename(name) if isinstance(name, str) else ""
            response = self._upload(self._reader, filename, body, kwargs)

        logger.debug(
            "Optidash responded %s for %s", response.status_code, response.url
        )
        return response

    def _upload(
        self, file: BinaryIO, filename: str, body: str, kwargs: Dict[str, Any]
    ) -> requests.Response:
        url = f"{self.client.base_url}/upload"
        filename = filename or "image"
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        logger.debug("POST %s (file: %s, data: %d bytes)", url, filename, len(body))
        return self._session.post(
            url,
            data={"data": body},
            files={"file": (filename, file, content_type)},
            **kwargs,
        )

    def to_json(self) -> Any:
        """
        Execute the request and return the API response.

        Returns:
            The decoded response (usually a dict) with ``success`` true

        Raises:
            OptidashAPIError: If the API reported a failure
            OptidashProtocolError: If the response envelope is malformed
            ValueError: If the body is not valid JSON

        Example:
            >>> meta = client.upload("photo.jpg").resize(width=100).to_json()
            >>> print(meta["output"]["url"])
        """
        response = self._execute()
        with response:
            result = response.json()
        return check_envelope(result)

    def to_stream(self) -> Tuple[Any, ImageStream]:
        """
        Execute a binary request.

        Returns:
            ``(meta, stream)``: the metadata from the ``X-Optidash-Meta``
            header (``None`` if absent) and an open ``ImageStream`` with the
            resulting image. The caller must close the stream.

        Raises:
            BinaryWebhookError: If a webhook step is set
            BinaryStorageError: If a store step is set
            OptidashAPIError: If the API reported a failure

        Example:
            >>> meta, stream = client.fetch(url).resize(width=100).to_stream()
            >>> with stream:
            ...     data = stream.read()
        """
        self._check_unsent()
        if self._steps["webhook"] is not None:
            raise BinaryWebhookError()
        if self._steps["store"] is not None:
            raise BinaryStorageError()

        response_params = dict(self._steps["response"] or {})
        response_params["mode"] = "binary"
        self._steps["response"] = response_params

        response = self._execute(stream=True)
        try:
            meta = None
            raw_meta = response.headers.get(META_HEADER)
            if raw_meta:
                meta = json.loads(_header_text(raw_meta))
            meta = check_envelope(meta)
        except Exception:
            response.close()
            raise

        return meta, ImageStream(response)

    def to_file(self, path, mode: int = 0o644) -> Any:
        """
        Execute a binary request and save the image to ``path``.

        The file is truncated if it exists, or created with permission bits
        ``mode`` (subject to the umask) if it does not.

        Returns:
            The response metadata
        """
        meta, stream = self.to_stream()
        with stream:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
            with os.fdopen(fd, "wb") as f:
                shutil.copyfileobj(stream, f, CHUNK_SIZE)
        return meta

    def copy_to(self, sink: BinaryIO) -> Any:
        """
        Execute a binary request and write the image into ``sink``.

        ``sink`` is left open; the response is always closed.

        Returns:
            The response metadata
        """
        meta, stream = self.to_stream()
        with stream:
            shutil.copyfileobj(stream, sink, CHUNK_SIZE)
        return meta
