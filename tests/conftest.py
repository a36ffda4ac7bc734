import pytest
from click.testing import CliRunner

from gather import fetchers


@pytest.fixture
def runner():
    """Click CLI runner fixture."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point GATHER_HOME at a temp dir and drop any cached dispatcher."""
    home = tmp_path / "gather-home"
    monkeypatch.setenv("GATHER_HOME", str(home))
    for var in ("GATHER_CONFIG", "GATHER_HTTP_TIMEOUT", "GATHER_GIT_BINARY", "GATHER_GIT_DEPTH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(fetchers, "_default_dispatcher", None)
    return home


@pytest.fixture
def fake_home(tmp_path):
    """A home resolver returning a deterministic directory."""
    home = tmp_path / "home" / "user"
    home.mkdir(parents=True)
    return lambda: str(home)
