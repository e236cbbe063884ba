# Configurations for the forecast API

# Daily variable requested from Open-Meteo; precipitation_sum is the total for the day in mm
DAILY_PRECIPITATION_VARIABLE = "precipitation_sum"

# Number of forecast days requested. Must cover today (index 0) and tomorrow (index 1).
FORECAST_DAYS = 2

# Unit identifier for API calls.
MM = "mm"

# Timezone used for daily aggregation; "auto" resolves it from the coordinates
TIMEZONE = "auto"
