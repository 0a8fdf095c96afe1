# constants.py
"""This module defines constants across the codebase"""

# Sentinel for unset values
# This is used to differentiate between a value that is set to None
# and a value that is not set at all.
UNSET = object()

# number of members in the raw ensemble forecast
N_FORECAST_MEMBERS = 21

# native forecast cadence
FORECAST_CADENCE = "6h"

# dimension names shared by every table
MEMBER_DIM = "member"
NOISE_DIM = "noise_member"
TIME_DIM = "time"

# noise-member id used for every series that carries no noise
NO_NOISE_MEMBER = 0

# variables carried by a normalized forecast
FORECAST_VARIABLES = [
    "AirTemp",
    "RelHum",
    "WindSpeed",
    "ShortWave",
    "LongWave",
    "PrecipRate",
]

# variables corrected by the bias coefficients
DEBIASED_VARIABLES = ["AirTemp", "RelHum", "WindSpeed", "ShortWave", "LongWave"]

# variables redistributed to sub-daily steps and spline interpolated
STATE_VARIABLES = ["AirTemp", "RelHum", "WindSpeed"]

# variables re-anchored to observations, wind is left alone
OFFSET_VARIABLES = ["AirTemp", "RelHum"]

# output file columns, in order
OUTPUT_COLUMNS = [
    "time",
    "Rain",
    "Snow",
    "AirTemp",
    "WindSpeed",
    "RelHum",
    "ShortWave",
    "LongWave",
]
OUTPUT_TIME_FORMAT = "%Y-%m-%d %H:%M"
OUTPUT_NA_REP = "NA"

# native units of the normalized forecast
VARIABLE_UNITS = {
    "AirTemp": "K",
    "RelHum": "[0 to 100]",
    "WindSpeed": "m/s",
    "ShortWave": "W/m2",
    "LongWave": "W/m2",
    "PrecipRate": "m/day",
    "Rain": "m/day",
    "Snow": "m/day",
}
OUTPUT_TEMPERATURE_UNITS = "degC"

# physical bounds applied after noise and at assembly
RELHUM_BOUNDS = (0.0, 100.0)

# calibration defaults
# a single bin covering the full year, leap day included
DEFAULT_BIN_WIDTH = 366
DAYS_IN_LEAP_YEAR = 366
DEFAULT_MIN_PAIRED_DAYS = 10

# solar constant used for clear-sky potential radiation (W/m2)
SOLAR_CONSTANT = 1366.0

# offset correction policies
OFFSET_POLICY_GROUP_MAX = "group_max"
OFFSET_POLICY_ANCHOR = "anchor"
OFFSET_POLICIES = [OFFSET_POLICY_GROUP_MAX, OFFSET_POLICY_ANCHOR]

# first-timestep look-ahead used to backfill fluxes missing at forecast start
BOUNDARY_FILL_LOOKAHEAD = {
    "ShortWave": "24h",
    "LongWave": "6h",
    "PrecipRate": "6h",
}

# Constant keys for the run context
_NEW_ATTRS_KEY = "new_attrs"
REPORTED_GAPS_KEY = "reported_gaps"

# Constant keys for the pipeline state
RAW_FORECAST = "forecast"
DAILY_FORECAST = "daily_forecast"
DEBIASED = "debiased"
REDISTRIBUTED = "redistributed"
INTERPOLATED = "interpolated"
HOURLY_STATES = "hourly_states"
HOURLY_SHORTWAVE = "hourly_shortwave"
HOURLY_HOLDS = "hourly_holds"
ASSEMBLED = "assembled"
EMITTED_FILES = "emitted_files"
