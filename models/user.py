from datetime import datetime
from enum import Enum
from pydantic import Field
from typing import Optional

from .base import BaseGolfModel


class SubscriptionStatus(str, Enum):
    FREE = "free"
    PRO = "pro"


class User(BaseGolfModel):
    """An account holder with their plan and credit balance."""
    id: Optional[str] = None
    email: str
    password_hash: Optional[str] = Field(None, exclude=True)
    name: Optional[str] = None
    handicap: Optional[float] = Field(None, ge=-10, le=54)
    home_course: Optional[str] = None
    ghin_number: Optional[str] = None
    subscription_status: SubscriptionStatus = SubscriptionStatus.FREE
    subscription_id: Optional[str] = None
    credits: int = Field(1, ge=0)
    created_at: Optional[datetime] = None

    @property
    def is_pro(self) -> bool:
        return self.subscription_status == SubscriptionStatus.PRO

    def can_analyze(self) -> bool:
        """Pro accounts are unlimited; everyone else spends a credit."""
        return self.is_pro or self.credits > 0
