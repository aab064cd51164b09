import sys
from pathlib import Path

import pytest

# Make the shared fakes importable from test modules
sys.path.insert(0, str(Path(__file__).parent))

from fakes import (  # noqa: E402
    AAVE_ADDRESS,
    BROKEN_ADDRESS,
    COMET_ADDRESS,
    KEEPER,
    OWNER,
    TOKEN0,
    TOKEN1,
    FailingDetailedProtocol,
    FakeBinaryProtocol,
    FakeDetailedProtocol,
    FakePoolManager,
)
from liquidguard.core.config import WAD  # noqa: E402
from liquidguard.core.defi.hook_engine import HookEngine  # noqa: E402
from liquidguard.core.defi.interfaces import ContractDirectory, PoolKey, SwapParams  # noqa: E402
from liquidguard.core.metrics import HookMetrics  # noqa: E402


@pytest.fixture
def pool_manager():
    return FakePoolManager()


@pytest.fixture
def aave():
    return FakeDetailedProtocol()


@pytest.fixture
def comet():
    return FakeBinaryProtocol()


@pytest.fixture
def broken():
    return FailingDetailedProtocol()


@pytest.fixture
def directory(aave, comet, broken):
    directory = ContractDirectory()
    directory.register(AAVE_ADDRESS, aave)
    directory.register(COMET_ADDRESS, comet)
    directory.register(BROKEN_ADDRESS, broken)
    return directory


@pytest.fixture
def metrics():
    return HookMetrics()


@pytest.fixture
def engine(pool_manager, directory, metrics):
    """Engine with a shape-A and a shape-B adapter and one authorized keeper."""
    engine = HookEngine(
        owner=OWNER,
        pool_manager=pool_manager,
        directory=directory,
        metrics=metrics,
        clock=lambda: 1_700_000_000,
    )
    engine.set_adapter(OWNER, "aave", AAVE_ADDRESS, True, WAD)
    engine.set_adapter(OWNER, "comet", COMET_ADDRESS, True, WAD)
    engine.set_liquidator_authorization(OWNER, KEEPER, True)
    return engine


@pytest.fixture
def pool_key():
    return PoolKey(currency0=TOKEN0, currency1=TOKEN1, fee=3000, tick_spacing=60)


@pytest.fixture
def swap_params():
    return SwapParams(zero_for_one=True, amount_specified=-10**18)
