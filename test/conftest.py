"""
Test configuration for tinyeval tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from environment import Environment
from interpreter import make_execution_context


@pytest.fixture
def empty_env():
  """A fresh empty environment"""
  return Environment.empty()


@pytest.fixture
def trace_records():
  """List that collects trace records"""
  return []


@pytest.fixture
def context(trace_records):
  """Execution context that records the trace instead of printing it"""
  return make_execution_context(trace=trace_records.append)
