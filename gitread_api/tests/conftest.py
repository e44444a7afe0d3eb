import os
import tempfile
from pathlib import Path

import pytest

# Keep the app's import-time workspace out of the working directory
os.environ.setdefault("WORKSPACE_ROOT", tempfile.mkdtemp(prefix="gitread-test-"))
os.environ.setdefault("GITREAD_API_KEY", "")


def write_tree(root: Path, files: dict) -> Path:
    """Create files from a {relative path: text or bytes} mapping."""
    for rel, body in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(body, bytes):
            p.write_bytes(body)
        else:
            p.write_text(body, encoding="utf-8")
    return root


@pytest.fixture
def make_tree(tmp_path):
    def _make(files: dict, name: str = "repo") -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        return write_tree(root, files)
    return _make
