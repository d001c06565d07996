import logging
import pytest # type: ignore

def pytest_configure(config):
    """Add markers to the pytest configuration."""
    config.addinivalue_line("markers", "quick: mark test as quick to run")
    config.addinivalue_line("markers", "full: mark test as part of the full test suite")

@pytest.fixture
def clean_env(monkeypatch):
    """Remove nanohll environment variables for the duration of a test."""
    for name in ("NANOHLL_STORAGE_BACKEND", "STORAGE_BACKEND", "NANOHLL_DATA_DIR",
                 "FILE_STORAGE_PATH", "NANOHLL_PRECISION", "NANOHLL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch

@pytest.fixture
def reset_logging():
    """Drop stream handlers installed by setup_logging after the test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
