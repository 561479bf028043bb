import asyncio
import json
import logging
import random
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import requests
from pydantic import ValidationError

from formflow.models import SelectedFile, SubmissionResult

logger = logging.getLogger(__name__)

Submitter = Callable[[Dict[str, Any]], Awaitable[Any]]


def coerce_result(raw: Any) -> SubmissionResult:
    """Turn a collaborator's return value into a SubmissionResult.

    Anything that does not satisfy the result contract raises ValueError.
    """
    if isinstance(raw, SubmissionResult):
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"Unexpected submission result type: {type(raw).__name__}")
    try:
        return SubmissionResult.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Malformed submission result: {exc}") from exc


def _json_default(value: Any) -> Any:
    if isinstance(value, SelectedFile):
        return value.describe()
    return str(value)


def _to_base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


class MockRegistrationService:
    """Stand-in submission backend that simulates latency and occasional failure."""

    def __init__(self, delay: float = 2.0, success_rate: float = 0.95, rng: Optional[random.Random] = None):
        self.delay = delay
        self.success_rate = success_rate
        self._rng = rng or random.Random()

    async def __call__(self, record: Dict[str, Any]) -> SubmissionResult:
        if self.delay > 0:
            await asyncio.sleep(self.delay)

        if self._rng.random() < self.success_rate:
            user_id = f"USR-{_to_base36(int(time.time() * 1000)).upper()}"
            logger.info("Mock registration %s stored %d steps", user_id, len(record))
            return SubmissionResult(
                success=True,
                id=user_id,
                message="Registration completed successfully!",
            )

        return SubmissionResult(success=False, message="Server error. Please try again later.")


class HttpSubmissionClient:
    """Posts the record as JSON and reads a SubmissionResult back."""

    def __init__(self, url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def _post(self, record: Dict[str, Any]) -> SubmissionResult:
        body = json.dumps(record, default=_json_default)
        response = self._session.post(
            self.url,
            data=body,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            raise RuntimeError(f"{response.status_code} {response.text[:400]}")
        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Submission endpoint returned non-JSON body: %s", response.text[:400])
            raise RuntimeError("Submission endpoint returned non-JSON body") from exc
        return coerce_result(payload)

    async def __call__(self, record: Dict[str, Any]) -> SubmissionResult:
        logger.info("Posting submission with %d steps to %s", len(record), self.url)
        return await asyncio.to_thread(self._post, record)
