"""
Shared pytest fixtures for ocean layers tests.

Rows mimic what the upstream query returns for the northern Gulf of Mexico
coastal model: numeric columns may be missing, null or strings, and every
row carries provenance tags the processors do not require.
"""

import os

import pytest

# ---------------------------------------------------------------------------
# Environment setup (before any oceanlayers imports)
# ---------------------------------------------------------------------------
os.environ.setdefault("OCEANLAYERS_METRICS_LOG_INTERVAL", "3600")
os.environ.setdefault("OCEANLAYERS_METRICS_SLOW_THRESHOLD_MS", "10000")

from oceanlayers.metrics import metrics  # noqa: E402
from tests.helpers import make_row  # noqa: E402


@pytest.fixture
def gulf_rows():
    """A small mixed query result: currents, wind, scalars and bad rows."""
    return [
        make_row(30.10, -88.20, "2025-07-31T00:00:00Z", depth=0, temp=28.5, salinity=33.1,
                 nspeed=0.42, direction=45.0, ndirection=120.0),
        make_row(30.10, -88.20, "2025-07-31T01:00:00Z", depth=0, temp=28.9, salinity=33.0,
                 nspeed=0.50, direction=50.0, ndirection=125.0),
        make_row(30.25, -87.90, "2025-07-31T00:30:00Z", depth=2, temp=29.4, salinity=32.4,
                 nspeed=0.31, direction=300.0),
        make_row("30.40", "-88.05", "2025-07-31T02:00:00Z", depth="1.5", temp="27.8",
                 nspeed="0.22", direction="10"),
        make_row(29.90, -88.60, "2025-07-31T03:00:00Z", depth=12, temp=26.1, salinity=34.2),
        make_row(None, -88.00, "2025-07-31T01:00:00Z", temp=28.0, nspeed=0.3, direction=90.0),
        make_row(95.0, -88.00, "2025-07-31T01:00:00Z", temp=28.0, nspeed=0.3, direction=90.0),
    ]


@pytest.fixture(autouse=True)
def reset_metrics():
    """Keep the process-wide metrics collector independent between tests."""
    metrics.reset()
    yield
    metrics.reset()
