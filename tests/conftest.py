import pytest

from transmute.engine import reset_engine
from transmute.settings import settings


def pytest_configure(config):
    for marker, description in (
        ("smoke", "quick tests covering the main behavior"),
        ("sanity", "detailed tests of edge cases and error handling"),
        ("regression", "end to end scenarios guarding past behavior"),
    ):
        config.addinivalue_line("markers", f"{marker}: {description}")


@pytest.fixture(autouse=True)
def restore_engine_settings():
    """Keep settings changes and the default engine local to each test."""
    original = settings.engine.model_copy()
    reset_engine()
    yield
    settings.engine = original
    reset_engine()
