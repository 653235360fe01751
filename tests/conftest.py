import os
import tempfile

# Le store et le LLM doivent être configurés avant le premier import de `app`.
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="aurelia-tests-")
os.environ["LLM_PROVIDER"] = "offline"

import pytest

from app.services.document_store import DocumentStore
from app.services.nonblocking import WRITES
from app.services.notifications import NOTICES


@pytest.fixture
def store(tmp_path):
    """Store isolé par test (les services acceptent `store=`)."""
    return DocumentStore(root=tmp_path / "store")


@pytest.fixture(autouse=True)
def _flush_writes():
    NOTICES.clear()
    yield
    WRITES.drain(timeout=5.0)
