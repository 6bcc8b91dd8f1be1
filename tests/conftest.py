from __future__ import annotations

import pytest
from fakes import FakeConnector, Script


@pytest.fixture
def make_connector():
    def _make(*scripts: Script) -> FakeConnector:
        return FakeConnector(scripts=list(scripts))

    return _make
