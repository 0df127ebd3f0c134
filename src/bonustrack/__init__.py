"""bonustrack - Track bank and credit card signup bonuses through their lifecycle."""

from bonustrack.models import BonusCategory, BonusRecord, BonusStatus
from bonustrack.storage import BonusStore
from bonustrack.tracker import BonusTracker

__version__ = "0.1.0"
__all__ = ["BonusCategory", "BonusRecord", "BonusStatus", "BonusStore", "BonusTracker"]
