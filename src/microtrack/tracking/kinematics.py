"""Numeric primitives shared by the augmenter and the collapser.

Pure functions over 1-D sequences:

- numerical_derivative: unit-spacing discrete derivative
- detrend: residual after removing a least-squares line
- fit_line: ordinary least-squares slope and intercept
- fftclean: one-sided amplitude spectrum of a sampled signal
- estimate_omega: dominant rotation rate from a periodic observable

Nothing here logs or touches pandas; callers pass arrays or Series and get
numpy arrays (or scalars) back.
"""

from typing import Optional, Tuple

import numpy as np
from scipy import fft as sp_fft

from microtrack.contracts.failure import DegenerateInput

__all__ = [
    'MIN_SPECTRAL_SAMPLES',
    'numerical_derivative',
    'detrend',
    'fit_line',
    'fftclean',
    'estimate_omega',
]

# Below this many samples a spectrum has too few bins to name a peak
MIN_SPECTRAL_SAMPLES = 4


def numerical_derivative(series) -> np.ndarray:
    """Discrete derivative with unit spacing.

    Central difference for interior samples, forward difference at the first
    sample and backward difference at the last. The output has the same
    length as the input.

    Parameters
    ----------
    series : array-like
        1-D samples.

    Returns
    -------
    np.ndarray
        Float array of the same length. A single sample has derivative 0.

    Examples
    --------
    >>> numerical_derivative([1.0, 3.0, 7.0])
    array([2., 3., 4.])
    """
    values = np.asarray(series, dtype=float)
    if values.size == 0:
        return np.empty(0, dtype=float)
    if values.size == 1:
        return np.zeros(1, dtype=float)
    return np.gradient(values, edge_order=1)


def fit_line(x, y) -> Tuple[float, float]:
    """Ordinary least-squares fit of ``y = m * x + b``.

    Parameters
    ----------
    x, y : array-like
        Paired samples of equal length.

    Returns
    -------
    (m, b) : tuple of float
        Slope and intercept.

    Raises
    ------
    DegenerateInput
        If the lengths differ or ``x`` has fewer than two distinct values.

    Examples
    --------
    >>> fit_line([0, 1, 2], [1, 3, 5])
    (2.0, 1.0)
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if x.shape != y.shape:
        raise DegenerateInput(f"fit_line: x and y differ in length ({x.size} vs {y.size})")
    if np.unique(x).size < 2:
        raise DegenerateInput("fit_line: need at least 2 distinct x values")

    x_mean = x.mean()
    y_mean = y.mean()
    dx = x - x_mean
    m = float(np.dot(dx, y - y_mean) / np.dot(dx, dx))
    b = float(y_mean - m * x_mean)
    return m, b


def detrend(series) -> np.ndarray:
    """Remove linear drift from a series.

    Fits a line to ``(index, value)`` pairs and returns the residuals.
    Series shorter than two samples have no line to fit; their residual
    about the mean is returned instead.
    """
    values = np.asarray(series, dtype=float)
    if values.size < 2:
        return values - values.mean() if values.size else values.copy()

    index = np.arange(values.size, dtype=float)
    m, b = fit_line(index, values)
    return values - (m * index + b)


def fftclean(x, y) -> Tuple[np.ndarray, np.ndarray]:
    """One-sided amplitude spectrum of ``y`` sampled at ``x``.

    The sample spacing is the median step of ``x``. When the steps are not
    uniform (a track with dropped frames) ``y`` is linearly resampled onto a
    uniform grid at that spacing first, so gaps do not shift the peak.

    Parameters
    ----------
    x : array-like
        Strictly increasing sample positions (seconds for a time axis).
    y : array-like
        Signal values at ``x``.

    Returns
    -------
    xf : np.ndarray
        Non-negative frequencies in ascending order (cycles per unit of x).
    yf : np.ndarray
        Amplitude at each frequency, ``2/N * |rfft(y)|``. Same length as xf.

    Raises
    ------
    DegenerateInput
        If fewer than two samples are given, lengths differ, or ``x`` is not
        strictly increasing.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if x.shape != y.shape:
        raise DegenerateInput(f"fftclean: x and y differ in length ({x.size} vs {y.size})")
    if x.size < 2:
        raise DegenerateInput("fftclean: need at least 2 samples")

    steps = np.diff(x)
    if np.any(steps <= 0):
        raise DegenerateInput("fftclean: x must be strictly increasing")

    spacing = float(np.median(steps))
    if not np.allclose(steps, spacing):
        n_uniform = int(np.floor((x[-1] - x[0]) / spacing + 1e-9)) + 1
        grid = x[0] + spacing * np.arange(n_uniform)
        y = np.interp(grid, x, y)

    n = y.size
    yf = 2.0 / n * np.abs(sp_fft.rfft(y))
    xf = sp_fft.rfftfreq(n, d=spacing)
    return xf, yf


def estimate_omega(x, y) -> Optional[float]:
    """Estimate a rotation rate from a periodic observable.

    The observable (elongation angle, major axis length, ...) is detrended,
    transformed with :func:`fftclean`, and the strongest non-zero frequency
    bin is located. The returned rate is that frequency divided by two: an
    elongated particle presents the same outline twice per revolution, so
    the observable shows two peaks for every full turn.

    Parameters
    ----------
    x : array-like
        Sample times (seconds), strictly increasing.
    y : array-like
        Observable values at ``x``.

    Returns
    -------
    float or None
        Rotations per unit of ``x`` (Hz for seconds). None when there are
        fewer than ``MIN_SPECTRAL_SAMPLES`` samples, the input has non-finite
        values, or the spectrum is flat (no peak to report).
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if y.size < MIN_SPECTRAL_SAMPLES or x.size != y.size:
        return None
    if not (np.isfinite(x).all() and np.isfinite(y).all()):
        return None

    try:
        xf, yf = fftclean(x, detrend(y))
    except DegenerateInput:
        return None

    if xf.size < 2:
        return None

    peak = 1 + int(np.argmax(yf[1:]))
    # Round-off floor: a constant or purely linear signal has no peak
    noise_floor = 1e-9 * max(1.0, float(np.abs(y).max()))
    if yf[peak] <= noise_floor:
        return None

    return float(xf[peak] / 2.0)
