# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum


class RewardOwnerType(str, Enum):
    VALIDATOR = "validator"
    DELEGATOR = "delegator"


class ProtocolError(Exception):
    pass


class RewardArithmeticError(ProtocolError, ArithmeticError):
    """Amount or percentage could not be parsed, or a division had a zero divisor."""
    pass


class ConsistencyError(ProtocolError):
    """Data the reward run depends on is missing or contradictory."""
    pass


class StoreError(ProtocolError):
    pass


class NotFoundError(StoreError):
    pass
