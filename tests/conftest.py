import os
import sys

import pytest


# Ensure the repository root is on sys.path for `from fanorona...` imports
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from fanorona.engine.zobrist import ZobristKeys  # noqa: E402


TEST_SEED = 0x5EED_F00D


@pytest.fixture
def keys() -> ZobristKeys:
    return ZobristKeys(TEST_SEED)
