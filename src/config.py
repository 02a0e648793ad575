"""Configuration settings for the test result API."""

import os
from datetime import timedelta
from urllib.parse import quote_plus
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def get_clinical_db_uri():
    """Get the clinical records (SQL Server) connection URI from environment variables."""
    uri = os.environ.get("CLINICAL_DB_URI")
    if uri:
        return uri
    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", "1433")
    user = quote_plus(os.environ.get("DB_USER", "covid_results"))
    password = quote_plus(os.environ.get("DB_PASS", ""))
    db_name = os.environ.get("DB_NAME", "covid_results")
    return f"mssql+pymssql://{user}:{password}@{host}:{port}/{db_name}"


def get_local_db_uri():
    """Get the local ledger store URI from environment variables."""
    return os.environ.get("LOCAL_DB_URI", "sqlite:///database.db")


def get_api_host_and_port():
    """Get the listen address for the API server."""
    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "3000"))
    return dict(host=host, port=port)


def get_ledger_retention():
    """How long notification requests and viewed results are kept."""
    return timedelta(days=int(os.environ.get("LEDGER_RETENTION_DAYS", "365")))


def get_active_window():
    """Trailing window for /to-notify and the viewed result audit."""
    return timedelta(days=int(os.environ.get("ACTIVE_WINDOW_DAYS", "7")))


def get_clinical_timezone():
    """Timezone the clinical store writes its (naive) timestamps in."""
    return ZoneInfo(os.environ.get("CLINICAL_TIMEZONE", "UTC"))


def get_notify_cross_check():
    return os.environ.get("NOTIFY_CROSS_CHECK", "true").lower() == "true"


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def get_log_level():
    """LOG_LEVEL if it names a level both logging and uvicorn accept, else INFO."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    return level if level in LOG_LEVELS else "INFO"
