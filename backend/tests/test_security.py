from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest
from conftest import USER_ID

from ledgr.core import security
from ledgr.core.errors import ConfigMissing
from ledgr.core.security import make_public_token, require_share_secret

BACKEND_DIR = Path(security.__file__).resolve().parents[2]


def test_share_secret_is_returned_when_configured():
    assert require_share_secret() == "test-share-secret"


@pytest.mark.parametrize("secret", [None, ""])
def test_missing_share_secret_raises_config_missing(monkeypatch, secret):
    monkeypatch.setattr(security.settings, "public_share_secret", secret)
    with pytest.raises(ConfigMissing):
        require_share_secret()
    with pytest.raises(ConfigMissing):
        make_public_token(USER_ID, "0f8fad5b-d9cb-469f-a165-70867728950e")


def test_app_refuses_to_start_without_share_secret(tmp_path):
    env = {
        **os.environ,
        "PYTHONPATH": str(BACKEND_DIR),
        "PUBLIC_SHARE_SECRET": "",
        "DATABASE_URL": "sqlite+pysqlite://",
        "UPLOAD_DIR": str(tmp_path / "uploads"),
    }
    result = subprocess.run(
        [sys.executable, "-c", "import ledgr.main"],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode != 0
    assert "ConfigMissing" in result.stderr
    assert "PUBLIC_SHARE_SECRET is not set" in result.stderr
