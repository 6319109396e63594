"""Schemas for relaying meal logs to Fitbit."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MealData(BaseModel):
    """A meal as recorded by the planner."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Food name shown in Fitbit.")
    calories: float = Field(..., ge=0)
    meal_type: Optional[str] = Field(
        None,
        alias="mealType",
        description="Planner meal category, e.g. breakfast, lunch, dinner.",
    )
    servings: float = Field(1, gt=0)
    date: Optional[dt.date] = Field(
        None, description="Log date; defaults to the current UTC date."
    )
    brand: Optional[str] = None


class MealSyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    meal_data: MealData = Field(..., alias="mealData")


class SyncCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")


class MealSyncResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    provider_log_id: Optional[int] = Field(None, alias="providerLogId")
    message: Optional[str] = None


__all__ = ["MealData", "MealSyncRequest", "MealSyncResponse", "SyncCheckRequest"]
