from .base import Venue
from .pumpfun import PumpfunVenue
from .pumpswap import PumpSwapVenue

__all__ = ["PumpSwapVenue", "PumpfunVenue", "Venue"]
