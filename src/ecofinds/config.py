"""Runtime settings for ecofinds.

Values that make sense to change per machine can be overridden through
environment variables; timing constants are fixed.
"""

import os
from pathlib import Path

DEFAULT_API_URL = "http://localhost:5000/api"
API_URL = os.environ.get("ECOFINDS_API_URL", DEFAULT_API_URL)

_default_data_dir = Path.home() / ".ecofinds"
DATA_DIR = Path(os.environ.get("ECOFINDS_DATA_DIR", _default_data_dir))

REQUEST_TIMEOUT = float(os.environ.get("ECOFINDS_TIMEOUT", "10"))

# Quiet period before a typed search term is sent (seconds)
DEBOUNCE_DELAY = 0.3

# Delays before moving to the next view after a successful submit (seconds)
CHECKOUT_REDIRECT_DELAY = 2.0
LISTING_REDIRECT_DELAY = 1.5

CURRENCY = "INR"

ALL_CATEGORIES = "all"
