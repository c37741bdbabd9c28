# ABOUTME: Application configuration for upstream APIs, caching, retries and alerts
# ABOUTME: Values come from the environment (or a .env file) with production defaults

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration"""

    # Wave model (gridded point forecast) API
    WAVE_MODEL_URL = os.getenv("WAVE_MODEL_URL", "https://api.noaa.gov/wavewatch/v3/point")
    WAVE_MODEL_API_KEY = os.getenv("WAVE_MODEL_API_KEY", os.getenv("NOAA_API_KEY", ""))
    WAVE_MODEL_PARAMETERS = "HTSGW,PERPW,DIRPW,WVDIR,WVPER,WVHGT"

    # NDBC real-time buoy reports
    NDBC_BASE_URL = os.getenv("NDBC_BASE_URL", "https://www.ndbc.noaa.gov/data/realtime2")

    HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # Retry policy for upstream fetches
    MAX_RETRIES = int(os.getenv("MAX_RETRIES", "2"))
    RETRY_DELAY_SECONDS = float(os.getenv("RETRY_DELAY_SECONDS", "1.0"))
    RATE_LIMIT_DELAY_SECONDS = float(os.getenv("RATE_LIMIT_DELAY_SECONDS", "5.0"))

    # Forecast settings
    HOURLY_FORECAST_POINTS = int(os.getenv("HOURLY_FORECAST_POINTS", "24"))  # Next 24 hours
    MINIMUM_CONFIDENCE_THRESHOLD = int(os.getenv("MINIMUM_CONFIDENCE_THRESHOLD", "70"))  # advisory
    FORECAST_TIMEOUT_SECONDS = float(os.getenv("FORECAST_TIMEOUT_SECONDS", "60"))

    # Caching
    MAX_CACHE_AGE_SECONDS = int(os.getenv("MAX_CACHE_AGE_SECONDS", "3600"))  # 1 hour
    ENABLE_OFFLINE_MODE = os.getenv("ENABLE_OFFLINE_MODE", "true").lower() == "true"
    CACHE_DIR = os.getenv("CACHE_DIR", "")  # empty keeps the cache in memory
    MINIMUM_REFRESH_INTERVAL_SECONDS = int(os.getenv("MINIMUM_REFRESH_INTERVAL_SECONDS", "300"))

    # Alerts
    ALERT_CHECK_INTERVAL_SECONDS = int(os.getenv("ALERT_CHECK_INTERVAL_SECONDS", "900"))  # 15 minutes
    # 0 means a matching rule fires on every evaluation pass
    ALERT_MIN_REFIRE_SECONDS = int(os.getenv("ALERT_MIN_REFIRE_SECONDS", "0"))

    # Spot and alert registry used by the command line runner
    SPOTS_FILE = os.getenv("SPOTS_FILE", "spots.json")

    # Debug mode
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"
