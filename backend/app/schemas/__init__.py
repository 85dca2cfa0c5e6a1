from app.schemas.plan import PlanCreate, PlanResponse, PlanVisibilityUpdate
from app.schemas.subscription import SubscriptionCreate, SubscriptionUpdate, SubscriptionResponse
from app.schemas.reward import RewardCreate, RewardUpdate, RewardResponse
from app.schemas.ledger import EarnRequest, TransactionResponse, BalanceResponse, RedemptionResponse
from app.schemas.gym_class import GymClassCreate, GymClassResponse
from app.schemas.booking import BookingCreate, BookingResponse, BookingStatusResponse

__all__ = [
    "PlanCreate", "PlanResponse", "PlanVisibilityUpdate",
    "SubscriptionCreate", "SubscriptionUpdate", "SubscriptionResponse",
    "RewardCreate", "RewardUpdate", "RewardResponse",
    "EarnRequest", "TransactionResponse", "BalanceResponse", "RedemptionResponse",
    "GymClassCreate", "GymClassResponse",
    "BookingCreate", "BookingResponse", "BookingStatusResponse",
]
