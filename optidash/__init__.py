"""
Optidash Python SDK

Client library for the Optidash image processing API.

Usage:
    from optidash import Client

    # Initialize client
    client = Client("your_api_key")

    # Upload a local image and get JSON metadata back
    meta = client.upload("photo.jpg").resize(width=300, height=300).to_json()

    # Let the API fetch a remote image and save the result
    meta = (
        client.fetch("https://example.com/photo.jpg")
        .optimize(compression="medium")
        .output(format="webp")
        .to_file("photo.webp")
    )

    # Stream the resulting image
    meta, stream = client.upload(open("photo.jpg", "rb")).flip(horizontal=True).to_stream()
    with stream:
        data = stream.read()
"""

import logging

from .client import Client, API_URL
from .exceptions import (
    OptidashError,
    OptidashValidationError,
    OptidashConfigError,
    InvalidSourceTypeError,
    BinaryWebhookError,
    BinaryStorageError,
    RequestAlreadySentError,
    OptidashProtocolError,
    MissingSuccessError,
    IncompleteErrorEnvelopeError,
    OptidashAPIError,
)
from .request import ImageStream, Params, Request, Source, STEPS
from .__version__ import __version__

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Client",
    "API_URL",
    "Request",
    "ImageStream",
    "Params",
    "Source",
    "STEPS",
    "OptidashError",
    "OptidashValidationError",
    "OptidashConfigError",
    "InvalidSourceTypeError",
    "BinaryWebhookError",
    "BinaryStorageError",
    "RequestAlreadySentError",
    "OptidashProtocolError",
    "MissingSuccessError",
    "IncompleteErrorEnvelopeError",
    "OptidashAPIError",
]
