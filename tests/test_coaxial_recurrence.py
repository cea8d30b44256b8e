import numpy as np
import numpy.testing as npt
import pytest

from spherescat.coupling import CachedCoAxialRecurrence
from spherescat.functions.special import radial_function, recurrence_a, recurrence_b
from spherescat.functions.spherical_harmonics import spherical_harmonic

WAVENUMBER = 1.0 + 1.5j
MAX_DEGREE = 6


def _assert_balanced(lhs, rhs, terms, rtol=1e-8, atol=1e-12):
    """``lhs == rhs`` relative to the largest magnitude of the terms involved."""
    scale = max(abs(t) for t in terms)
    assert abs(lhs - rhs) <= rtol * scale + atol


@pytest.fixture(params=[True, False], ids=["regular", "singular"])
def recurrence(request):
    return CachedCoAxialRecurrence(1.0, WAVENUMBER, regular=request.param)


def test_initial_value_matches_closed_form():
    recurrence = CachedCoAxialRecurrence(1.0, WAVENUMBER, regular=True)
    npt.assert_allclose(recurrence(0, 0, 0), 1.1400511799225792 - 0.55962217045848206j, rtol=1e-12)


@pytest.mark.parametrize("distance", [1.5, -1.5])
@pytest.mark.parametrize("regular", [True, False])
def test_seeds(distance, regular):
    recurrence = CachedCoAxialRecurrence(distance, WAVENUMBER, regular=regular)
    sign = np.sign(distance)
    for l in range(8):
        expected = (-sign) ** l * np.sqrt(2 * l + 1) * radial_function(l, WAVENUMBER * abs(distance), regular)
        npt.assert_allclose(recurrence(0, 0, l), expected, rtol=1e-12)


def test_low_order_closed_forms():
    kd = WAVENUMBER * 0.7
    recurrence = CachedCoAxialRecurrence(0.7, WAVENUMBER, regular=True)
    j0, j2 = radial_function(0, kd, True), radial_function(2, kd, True)
    npt.assert_allclose(recurrence(1, 0, 1), j0 - 2 * j2, rtol=1e-12)
    npt.assert_allclose(recurrence(1, 1, 1), j0 + j2, rtol=1e-12)
    npt.assert_allclose(recurrence(1, -1, 1), j0 + j2, rtol=1e-12)


def test_order_symmetry(recurrence):
    for n in range(MAX_DEGREE):
        for m in range(-n, n + 1):
            for l in range(MAX_DEGREE):
                assert recurrence(n, m, l) == recurrence(n, -m, l)


def test_exchange_symmetry(recurrence):
    for n in range(MAX_DEGREE):
        for m in range(-n, n + 1):
            for l in range(abs(m), MAX_DEGREE):
                npt.assert_allclose(
                    recurrence(n, m, l),
                    (-1) ** (n + l) * recurrence(l, m, n),
                    rtol=1e-7,
                    atol=1e-11,
                )


def test_degree_recurrence(recurrence):
    t = recurrence
    for n in range(MAX_DEGREE):
        for m in range(-n, n + 1):
            for l in range(MAX_DEGREE):
                terms = [
                    recurrence_a(n - 1, m) * t(n - 1, m, l),
                    recurrence_a(n, m) * t(n + 1, m, l),
                    recurrence_a(l, m) * t(n, m, l + 1),
                    recurrence_a(l - 1, m) * t(n, m, l - 1),
                ]
                _assert_balanced(terms[0] - terms[1], terms[2] - terms[3], terms)


def test_order_recurrence(recurrence):
    t = recurrence
    for n in range(MAX_DEGREE):
        for m in range(-n, n + 1):
            for l in range(MAX_DEGREE):
                terms = [
                    recurrence_b(n, m) * t(n - 1, m + 1, l),
                    recurrence_b(n + 1, -m - 1) * t(n + 1, m + 1, l),
                    recurrence_b(l + 1, m) * t(n, m, l + 1),
                    recurrence_b(l, -m - 1) * t(n, m, l - 1),
                ]
                _assert_balanced(terms[0] - terms[1], terms[2] - terms[3], terms)


@pytest.mark.parametrize("regular", [True, False])
def test_zero_distance_is_identity(regular):
    recurrence = CachedCoAxialRecurrence(0.0, WAVENUMBER, regular=regular)
    for n in range(MAX_DEGREE):
        for m in range(-n, n + 1):
            for l in range(MAX_DEGREE):
                assert recurrence(n, m, l) == (1.0 if n == l else 0.0)
    assert recurrence.size == 0


def test_out_of_range_entries_are_zero():
    recurrence = CachedCoAxialRecurrence(1.0, WAVENUMBER)
    assert recurrence(2, 3, 5) == 0
    assert recurrence(5, 3, 2) == 0
    assert recurrence(2, 1, -1) == 0
    assert recurrence(-1, 0, 2) == 0
    assert recurrence.size == 0


def test_entries_are_cached():
    recurrence = CachedCoAxialRecurrence(1.0, WAVENUMBER)
    first = recurrence(4, 2, 3)
    size = recurrence.size
    assert recurrence(4, 2, 3) == first
    assert recurrence(3, 1, 2) is not None
    assert recurrence.size == size


def test_dense_table_matches_lookups():
    recurrence = CachedCoAxialRecurrence(0.8, WAVENUMBER, regular=False)
    table = recurrence.dense(4, 3)
    assert table.shape == (5, 4, 4)
    for n in range(5):
        for m in range(4):
            for l in range(4):
                assert table[n, m, l] == recurrence(n, m, l)


def _scalar_wave(n, m, k, point, regular):
    r = np.linalg.norm(point)
    theta = np.arccos(point[2] / r)
    phi = np.arctan2(point[1], point[0])
    return radial_function(n, k * r, regular) * spherical_harmonic(n, m, theta, phi)


def _reexpanded(recurrence, n, m, k, point, regular, l_max):
    return sum(
        recurrence(n, m, l) * _scalar_wave(l, m, k, point, regular)
        for l in range(abs(m), l_max + 1)
    )


POINTS = {
    "on-axis": np.array([0.0, 0.0, 0.35]),
    "off-axis": 0.35 * np.array([np.sin(1.0) * np.cos(0.7), np.sin(1.0) * np.sin(0.7), np.cos(1.0)]),
}


@pytest.mark.parametrize("point", POINTS.values(), ids=POINTS.keys())
@pytest.mark.parametrize("distance", [1.2, -1.2])
def test_regular_to_regular_reexpansion(point, distance):
    k = 2.0
    recurrence = CachedCoAxialRecurrence(distance, k, regular=True)
    for n, m in [(0, 0), (1, 0), (2, 1), (2, -2)]:
        direct = _scalar_wave(n, m, k, point + [0.0, 0.0, distance], True)
        series = _reexpanded(recurrence, n, m, k, point, True, 25)
        npt.assert_allclose(series, direct, rtol=1e-7, atol=1e-10)


@pytest.mark.parametrize("point", POINTS.values(), ids=POINTS.keys())
@pytest.mark.parametrize("distance", [1.5, -1.5])
def test_singular_to_regular_reexpansion(point, distance):
    k = 2.0
    recurrence = CachedCoAxialRecurrence(distance, k, regular=False)
    for n, m in [(0, 0), (1, 1), (2, 0), (2, -1)]:
        direct = _scalar_wave(n, m, k, point + [0.0, 0.0, distance], False)
        series = _reexpanded(recurrence, n, m, k, point, True, 25)
        npt.assert_allclose(series, direct, rtol=1e-7, atol=1e-10)


@pytest.mark.parametrize("point", POINTS.values(), ids=POINTS.keys())
def test_singular_to_singular_reexpansion(point):
    k = 2.0
    distance = 0.06
    recurrence = CachedCoAxialRecurrence(distance, k, regular=True)
    for n, m in [(0, 0), (1, 0), (2, 2)]:
        direct = _scalar_wave(n, m, k, point + [0.0, 0.0, distance], False)
        series = _reexpanded(recurrence, n, m, k, point, False, 25)
        npt.assert_allclose(series, direct, rtol=1e-7)


def test_truncation_error_shrinks_with_degree():
    k = 2.0
    distance = 1.5
    point = POINTS["off-axis"]
    recurrence = CachedCoAxialRecurrence(distance, k, regular=False)
    direct = _scalar_wave(1, 1, k, point + [0.0, 0.0, distance], False)
    errors = [abs(_reexpanded(recurrence, 1, 1, k, point, True, l_max) - direct) for l_max in (2, 6, 12)]
    assert errors[0] > errors[1] > errors[2]
