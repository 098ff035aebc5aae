"""
Database Schemas for the SplitWise backend

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name (e.g., User -> "user").
"""

from decimal import Decimal
from bson import Decimal128
from pydantic import BaseModel, Field, EmailStr, field_serializer
from typing import List

MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000000")
# Decimal128 holds 34 significant digits exactly
MAX_AMOUNT_DIGITS = 34


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address, stored lower-cased")
    password_hash: str = Field(..., description="BCrypt password hash")


class Group(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    owner_id: str = Field(..., description="Id of the creating user")
    members: List[str] = Field(..., min_length=1, description="Member display names")


class Expense(BaseModel):
    group_id: str
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=MIN_AMOUNT, le=MAX_AMOUNT)
    paid_by: str
    participants: List[str] = Field(..., min_length=1)
    date: str = Field(..., description="Calendar date of the expense, e.g. 2024-01-15")
    created_by: str

    @field_serializer("amount", when_used="python")
    def _amount_as_decimal128(self, amount: Decimal) -> Decimal128:
        return Decimal128(amount)
