"""
Payout instruments

Provides:
  - PreLaunchInstrument : placeholder holding, swappable into LAUNCH
  - LaunchInstrument    : the launched asset (primary holdings)
  - EscrowInstrument    : capability-minted escrowed rewards
"""

from .base import Instrument, InstrumentError, ValueConsumedError
from .escrow import EscrowInstrument, EscrowValue
from .launch import LaunchInstrument
from .prelaunch import PreLaunchInstrument

__all__ = [
    "Instrument",
    "InstrumentError",
    "ValueConsumedError",
    "EscrowInstrument",
    "EscrowValue",
    "LaunchInstrument",
    "PreLaunchInstrument",
]
