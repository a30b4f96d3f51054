import logging
import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import tokenfs`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


ALICE = "0x" + "a1" * 20
ADMIN = "0x" + "ad" * 20


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch, tmp_path):
    """Fresh configuration singleton, no TOKENFS_* env, no leftover log handlers."""
    from tokenfs.config import ConfigManager

    for name in list(os.environ):
        if name.startswith("TOKENFS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    ConfigManager.reset()
    yield
    ConfigManager.reset()
    root = logging.getLogger("tokenfs")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def ledger():
    from tokenfs.ledger import Ledger
    return Ledger()


@pytest.fixture
def nft(ledger):
    from tokenfs.permission_nft import PermissionNFT
    return PermissionNFT(ledger, ADMIN)


@pytest.fixture
def fs(ledger):
    from tokenfs.filesystem import TokenFilesystem
    return TokenFilesystem(ledger, ADMIN)


@pytest.fixture
def alice_token(nft):
    """Token 1, owned by Alice."""
    return nft.mint_access_token(ADMIN, ALICE)


@pytest.fixture
def granted(fs, nft, alice_token):
    """Alice's token may write under /agent1."""
    fs.replace_token_prefixes(ADMIN, nft.address, alice_token, ["/agent1"])
    return alice_token
