"""
Clear-sky solar geometry used as the shape kernel for shortwave radiation.

All timestamps are treated as UTC. Longitude is in degrees east, so sites in
the western hemisphere have negative longitudes.
"""

from typing import Iterable

import numpy as np
import pandas as pd

from metdownscale.core.constants import SOLAR_CONSTANT

d2r = np.pi / 180.0


def equation_of_time(doy: np.ndarray) -> np.ndarray:
    """Difference between true and mean solar time, in hours.

    Parameters
    ----------
    doy : np.ndarray
        Fractional day of year.

    Returns
    -------
    np.ndarray

    """
    f = d2r * (279.5 + 0.9856 * doy)
    return (
        -104.7 * np.sin(f)
        + 596.2 * np.sin(2.0 * f)
        + 4.3 * np.sin(4.0 * f)
        - 429.3 * np.cos(f)
        - 2.0 * np.cos(2.0 * f)
        + 19.3 * np.cos(3.0 * f)
    ) / 3600.0


def cos_solar_zenith(
    times: Iterable,
    latitude: float,
    longitude: float,
    dt_hours: float = 1.0,
) -> np.ndarray:
    """Cosine of the solar zenith angle at the middle of each time bin.

    Parameters
    ----------
    times : array-like of datetime
        Start of each time bin, UTC.
    latitude : float
        Site latitude, degrees north.
    longitude : float
        Site longitude, degrees east.
    dt_hours : float, optional
        Length of each time bin in hours, default 1.

    Returns
    -------
    np.ndarray
        Cosine of the zenith angle, zero while the sun is below the horizon.

    """
    times = pd.DatetimeIndex(times)
    hr = np.asarray(times.hour + times.minute / 60.0, dtype=float)
    doy = np.asarray(times.dayofyear, dtype=float) + hr / 24.0

    et = equation_of_time(doy)

    # standard meridian of the site's nominal time zone
    merid = np.floor(longitude / 15.0) * 15.0
    if merid < 0:
        merid += 15.0
    lon_correction = (longitude - merid) * -4.0 / 60.0
    tz = merid / 360.0 * 24.0
    midbin = 0.5 * dt_hours

    # UTC hour of solar noon
    t0 = 12.0 + lon_correction - et - tz - midbin
    # solar hour angle in radians
    ha = np.pi / 12.0 * (hr - t0)
    # declination in radians
    decl = -23.45 * d2r * np.cos(2.0 * np.pi * (doy + 10.0) / 365.0)

    cosz = np.sin(latitude * d2r) * np.sin(decl) + np.cos(latitude * d2r) * np.cos(
        decl
    ) * np.cos(ha)
    return np.clip(cosz, 0.0, None)


def potential_radiation(
    times: Iterable, latitude: float, longitude: float, dt_hours: float = 1.0
) -> np.ndarray:
    """Clear-sky potential shortwave radiation at the top of the atmosphere, W/m2."""
    return SOLAR_CONSTANT * cos_solar_zenith(times, latitude, longitude, dt_hours)
