"""
Shared pytest fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add project root (and this directory, for fakes.py) to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import build_sample_tree, sample_markets
from wagerline.catalog.selection_index import SelectionIndex


@pytest.fixture
def markets():
    """Raw markets for one event, covering every selections shape."""
    return sample_markets()


@pytest.fixture
def sample_tree():
    return build_sample_tree()


@pytest.fixture
def sample_index(sample_tree):
    index = SelectionIndex()
    index.rebuild(sample_tree)
    return index
