import math

import pytest

from optrisk.pricing import norm_cdf, norm_pdf


def _exact_cdf(x):
    return 0.5 * (1.0 + math.erf(x / math.sqrt(2.0)))


@pytest.mark.parametrize("x", [-6.0, -3.5, -1.96, -0.5, 0.0, 0.25, 1.0, 2.33, 4.0, 7.5])
def test_norm_cdf_matches_erf_within_tolerance(x):
    assert norm_cdf(x) == pytest.approx(_exact_cdf(x), abs=1e-6)


def test_norm_cdf_symmetry_and_limits():
    assert norm_cdf(0.0) == pytest.approx(0.5, abs=1e-9)
    assert norm_cdf(1.3) + norm_cdf(-1.3) == pytest.approx(1.0, abs=1e-12)
    assert norm_cdf(math.inf) == 1.0
    assert norm_cdf(-math.inf) == 0.0
    assert norm_cdf(40.0) == pytest.approx(1.0)
    assert norm_cdf(-40.0) == pytest.approx(0.0)


def test_norm_cdf_propagates_nan():
    assert math.isnan(norm_cdf(math.nan))


def test_norm_pdf_peak():
    assert norm_pdf(0.0) == pytest.approx(1.0 / math.sqrt(2.0 * math.pi))
    assert norm_pdf(2.0) == pytest.approx(norm_pdf(-2.0))
