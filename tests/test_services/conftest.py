from typing import Any, Dict, List, Optional

import pytest

from src.services.email import EmailResult
from src.services.webpush import PushPayload, PushResult


class FakePushSender:
    """Records deliveries; ``results`` maps endpoint URL to a canned outcome."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.results: Dict[str, Any] = {}

    async def __call__(self, subscription_info: Dict[str, Any], payload: PushPayload) -> PushResult:
        self.calls.append({"endpoint": subscription_info["endpoint"], "payload": payload})
        outcome = self.results.get(subscription_info["endpoint"], PushResult(sent=True))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeEmailSender:
    def __init__(self, result: Optional[EmailResult] = None) -> None:
        self.calls: List[Any] = []
        self.result = result or EmailResult(sent=True)

    async def __call__(self, record) -> EmailResult:
        self.calls.append(record)
        return self.result


@pytest.fixture
def push_sender() -> FakePushSender:
    return FakePushSender()


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()
