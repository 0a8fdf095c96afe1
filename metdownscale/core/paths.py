# paths.py
"""This module defines file naming used for forecast inputs and driver outputs"""

# Raw ensemble forecast, one per issue date, issued at 00z
FORECAST_FILE_TEMPLATE = "{issue:%Y%m%d}gep_all_00z"
FORECAST_FILE_SUFFIX = ".csv"

# Hourly driver file, one per (forecast member, noise member) pair
MET_FILE_TEMPLATE = "met_hourly_{file_name}_NOAA{member}_ds{noise_member}.csv"

# Stored bias coefficients
COEFFICIENTS_FILE = "debiased_coefficients.csv"
