from app.models.plan import Plan
from app.models.subscription import Subscription
from app.models.reward import Reward
from app.models.ledger import PointsAccount, LedgerTransaction
from app.models.gym_class import GymClass
from app.models.booking import Booking, BookingStatus

__all__ = [
    "Plan", "Subscription", "Reward",
    "PointsAccount", "LedgerTransaction",
    "GymClass", "Booking", "BookingStatus",
]
