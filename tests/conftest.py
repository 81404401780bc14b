from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Tuple

import httpx
import pytest
import structlog

from detector_dispatch.clients import ConnectionDescriptor
from detector_dispatch.dispatcher import Dispatcher

from tests.unit.helpers.fakes import FakeDetector


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_detector() -> FakeDetector:
    return FakeDetector()


@pytest.fixture
async def make_dispatcher():
    """Build dispatchers whose descriptors are backed by fake detectors."""

    created: List[Dispatcher] = []

    def _make(detectors: Dict[str, Tuple[str, FakeDetector]]) -> Dispatcher:
        table = {
            detector_id: ConnectionDescriptor(
                endpoint=endpoint,
                transport=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            )
            for detector_id, (endpoint, handler) in detectors.items()
        }
        dispatcher = Dispatcher(MappingProxyType(table))
        created.append(dispatcher)
        return dispatcher

    yield _make
    for dispatcher in created:
        await dispatcher.aclose()
