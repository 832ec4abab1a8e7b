"""
Dualchain Harness Constants

This module consolidates all global constants and environment configuration
used throughout the harness. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

ENDPOINT_DEFAULTS = {
    'DUALCHAIN_EVM_RPC_URL':           'http://127.0.0.1:8545',
    'DUALCHAIN_COSMOS_RPC_URL':        'http://127.0.0.1:26657',
    'DUALCHAIN_REST_URL':              'http://127.0.0.1:1317',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# BLOCK ALIGNMENT PARAMETERS
# ==================================================================================
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_DELAY_SECONDS = 1.0  # Pause between two missed attempts

# Extra wait applied to the faster side, multiplied by the attempt index.
# Untuned: not derived from measured block-time distributions.
DEFAULT_STAGGER_STEP = 0.1


# ==================================================================================
# LOAD DRIVER PARAMETERS
# ==================================================================================
DEFAULT_LOAD_DURATION = 20.0
DEFAULT_BLOCK_TIME = 0.2


# ==================================================================================
# NETWORK CONSTANTS
# ==================================================================================
CONNECTION_TIMEOUT = 10.0  # 10 seconds
RECEIPT_POLL_INTERVAL = 0.25

BLOCK_TAGS = frozenset({'latest', 'earliest', 'pending', 'safe', 'finalized'})


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = ENDPOINT_DEFAULTS | LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
