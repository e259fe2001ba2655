"""
Shared fixtures for the doc2pdf tests.

Settings are read once per process, so the working directory and console
colours are pinned through the environment before any doc2pdf import.
"""

import os
import tempfile

import pytest

os.environ.setdefault("DOC2PDF_BASE_DIR", tempfile.mkdtemp(prefix="doc2pdf-tests-"))
os.environ.setdefault("DOC2PDF_LOG_COLORS", "false")

from tests.helpers import FakeEngine  # noqa: E402


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def make_client(staging_dir):
    """Build a TestClient whose conversion service uses the given engine."""
    from fastapi.testclient import TestClient

    from doc2pdf.api.convert import get_conversion_service
    from doc2pdf.main import app
    from doc2pdf.services.conversion_service import ConversionService
    from doc2pdf.storage.local import LocalStorage

    def _make(engine=None):
        engine = engine or FakeEngine()
        service = ConversionService(storage=LocalStorage(staging_dir), engine=engine)
        app.dependency_overrides[get_conversion_service] = lambda: service
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
