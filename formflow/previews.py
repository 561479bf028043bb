import asyncio
import base64
import logging
from typing import Awaitable, Callable

from formflow.models import SelectedFile

logger = logging.getLogger(__name__)

Previewer = Callable[[SelectedFile], Awaitable[str]]


def _encode_data_url(file: SelectedFile) -> str:
    encoded = base64.b64encode(file.data).decode("ascii")
    return f"data:{file.content_type};base64,{encoded}"


async def read_data_url(file: SelectedFile) -> str:
    """Encode an image file as a data URL without blocking the event loop."""
    if not file.is_image:
        raise ValueError(f"{file.filename} is not an image ({file.content_type})")
    data_url = await asyncio.to_thread(_encode_data_url, file)
    logger.debug("Generated %d byte preview for %s", len(data_url), file.filename)
    return data_url
