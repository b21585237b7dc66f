from __future__ import annotations

import io

import pytest

from packhints.report import Reporter


@pytest.fixture
def reporter() -> Reporter:
    return Reporter(verbose=True, out=io.StringIO(), err=io.StringIO())
