"""
Epoch Points Constants

This module consolidates the environment configuration and the fixed
protocol parameters of the points program. Constants are organized by
category for easy reference and maintenance.
"""
import ast
import re
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE PROTOCOL VALUES BELOW DEFINE HOW CLAIMS ARE COMPUTED AND ROUTED.
# CHANGING THEM ON A LIVE PROGRAM CHANGES THE ENTITLEMENT OF EVERY UNCLAIMED
# EPOCH. OVERRIDE THEM THROUGH THE PROGRAM CONFIG FOR TESTNETS ONLY.

# ==================================================================================
# INTEGER DOMAIN
# ==================================================================================
U64_MAX = 2**64 - 1


# ==================================================================================
# CLAIM PARAMETERS
# ==================================================================================
SECONDS_PER_DAY = 86_400
CLAIM_WINDOW_DAYS = 28
CLAIM_WINDOW_SECONDS = CLAIM_WINDOW_DAYS * SECONDS_PER_DAY

# First epoch whose reward pool can be claimed. Claims are globally closed
# until the clock has moved past it.
CLAIMS_OPEN_EPOCH = 16

# Last epoch whose rewards are swept from the pre-launch instrument into the
# launch instrument once the program has launched. Later epochs pay out in
# the escrow instrument.
TRANSITION_CUTOVER_EPOCH = 18


# ==================================================================================
# HISTORICAL REWARD SCHEDULE
# ==================================================================================
# Reward pools for epochs 1..N, seeded once at program initialization.
# Amounts are in base units (8 decimals).
REWARD_DECIMALS = 8
POST_LAUNCH_EPOCH = 16

HISTORICAL_REWARD_SCHEDULE = (
    (0,) * (POST_LAUNCH_EPOCH - 1)
    + (
        2_500_000 * 10**REWARD_DECIMALS,  # epoch 16
        2_500_000 * 10**REWARD_DECIMALS,  # epoch 17
        2_000_000 * 10**REWARD_DECIMALS,  # epoch 18
        1_500_000 * 10**REWARD_DECIMALS,  # epoch 19
        1_500_000 * 10**REWARD_DECIMALS,  # epoch 20
    )
)


# ==================================================================================
# VALIDATION PATTERNS
# ==================================================================================
# Account addresses are 0x-prefixed hex strings of up to 32 bytes
VALID_ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{1,64}$')


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
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Only calls ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
