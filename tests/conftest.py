from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from preview_engine.engines.template.template_engine import clear_template_cache
from preview_engine.main import app


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def _fresh_template_cache() -> Generator[None, None, None]:
    yield
    clear_template_cache()
