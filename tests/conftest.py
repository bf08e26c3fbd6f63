import itertools

import pytest

from gridboard.engine import LayoutEngine
from gridboard.models import CardPlacement, DashboardLayout, LayoutMetrics
from gridboard.policy import CardKind


@pytest.fixture
def engine():
    return LayoutEngine()


@pytest.fixture
def make_card():
    def _make(kind=CardKind.TIMER, x=0, y=0, w=12, h=8, **kwargs):
        return CardPlacement(kind=kind, x=x, y=y, w=w, h=h, **kwargs)
    return _make


@pytest.fixture
def two_timers(make_card):
    """Two 12x8 timer cards side by side on a 24-column grid."""
    a = make_card(x=0, y=0)
    b = make_card(x=12, y=0)
    return DashboardLayout(cards=[a, b]), a, b


@pytest.fixture
def metrics():
    # column step 56, row step 76
    return LayoutMetrics(columns=24, gap=16, row_unit_height=60, col_width=40)


@pytest.fixture
def clock():
    counter = itertools.count(1000)
    return lambda: float(next(counter))
