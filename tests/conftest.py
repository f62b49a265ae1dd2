from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import pytest

from drainpoint.config import AllowedApp

Call = Tuple[str, str, Optional[float], List[str]]


class RecordingSink:
    def __init__(self) -> None:
        self.calls: List[Call] = []

    def histogram(self, name: str, value: Optional[float], tags: Sequence[str]) -> None:
        self.calls.append(("histogram", name, value, list(tags)))

    def increment(self, name: str, value: float, tags: Sequence[str]) -> None:
        self.calls.append(("increment", name, value, list(tags)))

    def gauge(self, name: str, value: float, tags: Sequence[str]) -> None:
        self.calls.append(("gauge", name, value, list(tags)))

    def names(self) -> List[str]:
        return [name for _, name, _, _ in self.calls]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def allowed_apps() -> dict[str, AllowedApp]:
    return {
        "my-app": AllowedApp(
            name="my-app",
            password="s3cret",
            tags=["env:prod", "app:my-app"],
            prefix="acme.",
        )
    }
