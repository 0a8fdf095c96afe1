"""
Converts air temperature between the Kelvin of the forecast and the Celsius
expected by the lake model driver files.
"""

import xarray as xr


def get_unit_conversion_options() -> dict:
    """Get dictionary of unit conversion options offered for each unit"""
    options = {
        "K": ["K", "degC"],
        "degC": ["K", "degC"],
    }
    return options


def convert_units(da: xr.DataArray, selected_units: str) -> xr.DataArray:
    """Converts units of a temperature variable

    Parameters
    ----------
    da: xr.DataArray
        data, with a ``units`` attribute
    selected_units: str
        units to convert to

    Returns
    -------
    da: xr.DataArray
        data with converted units and updated units attribute

    Raises
    ------
    ValueError
        If the data has no units attribute or the conversion is not offered.

    """
    try:
        native_units = da.attrs["units"]
    except KeyError:
        raise ValueError(
            "This variable does not have identifiable native units. "
            "Add a 'units' attribute before converting."
        )

    options = get_unit_conversion_options()
    if selected_units not in options.get(native_units, [native_units]):
        raise ValueError(
            f"Cannot convert from {native_units!r} to {selected_units!r}. "
            f"Options are {options.get(native_units, [native_units])}."
        )

    attrs = dict(da.attrs)
    match native_units:
        case native_units if native_units == selected_units:
            return da
        case "K":
            da = da - 273.15
        case "degC":
            da = da + 273.15

    # Arithmetic drops attributes, restore them with the new units
    da.attrs = attrs
    da.attrs["units"] = selected_units
    return da
