"""
Epoch Points Package

Epoch-scoped points ledger with pro-rata reward claims.
Core imports are lazily loaded so that importing a submodule does not pull
in the whole program. For direct module access, import from submodules:

    from epochpoints.program import RewardProgram
    from epochpoints.exceptions import NoClaimable
"""

__version__ = "1.0.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    if name == 'RewardProgram':
        from .program import RewardProgram
        return RewardProgram
    elif name == 'load_config':
        from .config import load_config
        return load_config
    elif name == 'PointsError':
        from .exceptions import PointsError
        return PointsError
    raise AttributeError(f"module 'epochpoints' has no attribute {name!r}")

__all__ = ['RewardProgram', 'load_config', 'PointsError']
