# avlstore/config.py
import os

# Logging configuration
LOGGING_CONFIG = {
    "level": os.environ.get("AVLSTORE_LOG_LEVEL", "INFO"),
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
}

# CSV with "key,value" rows loaded into the key/value store at startup
DEFAULT_CSV_PATH = os.environ.get(
    "AVLSTORE_CSV_PATH",
    os.path.join(os.path.dirname(__file__), "..", "data", "dataset.csv")
)

# Record file used by the smoke test when no path is given
DEFAULT_DATA_PATH = os.environ.get("AVLSTORE_DATA_PATH", "")

# struct layout of one stored record: (key, value)
RECORD_FORMAT = "<qd"

# API listing limits
DEFAULT_LIMIT = 50
MAX_LIMIT = 200

# Progress is logged every N ingested rows
INGEST_PROGRESS_EVERY = 100000
