"""Device registration and watchlist data models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Platform = Literal["ios", "android", "unknown"]


class DeviceInfo(BaseModel):
    """Push-notification registration of one device."""

    device_id: str = Field(..., min_length=1, description="Device identifier")
    fcm_token: str = Field(..., min_length=1, description="Push token")
    platform: Platform = Field(default="unknown", description="Device platform")
    user_id: str = Field(..., min_length=1, description="Owning user")
    created_at: datetime = Field(default_factory=datetime.now, description="Registration time")
    is_active: bool = Field(default=True, description="Whether pushes are delivered")

    model_config = {"frozen": True}

    def registration_payload(self) -> dict:
        return {
            "deviceId": self.device_id,
            "fcmToken": self.fcm_token,
            "platform": self.platform,
            "userId": self.user_id,
        }


class WatchlistItem(BaseModel):
    """A symbol on the user's watchlist."""

    symbol: str = Field(..., min_length=1, description="Trading symbol")
    created_at: datetime = Field(default_factory=datetime.now, description="When it was added")

    model_config = {"frozen": True}
