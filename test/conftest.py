"""
Test configuration for the Oberon-07 front-end tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def data_dir():
  """Directory holding the sample Oberon modules"""
  return Path(__file__).parent / "data"
