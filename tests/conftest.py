import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from sap_adt_lib import config  # noqa: E402


@pytest.fixture(autouse=True)
def reset_adt_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate bridge/ADT env between tests."""

    for var in (
        "BRIDGE_URL",
        "SAP_ADT_URL",
        "SAP_ADT_BRIDGE_PORT",
        "SAP_ADT_HEALTH_TIMEOUT",
        "SAP_ADT_PROXY_TIMEOUT",
        "SAP_ADT_DEFAULT_PACKAGE",
        "SAP_ADT_DEFAULT_LANGUAGE",
        "SAP_ADT_ALREADY_EXISTS_MARKERS",
        "SAP_ADT_DEBUG",
        "SAP_ADT_LOG_FILE",
    ):
        monkeypatch.delenv(var, raising=False)
    config.repo_root.cache_clear()


@pytest.fixture
def anyio_backend() -> str:
    """The library is asyncio-based (asyncio.Lock / asyncio.gather)."""

    return "asyncio"
