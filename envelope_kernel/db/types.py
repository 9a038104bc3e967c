"""
Module: envelope_kernel.db.types
Responsibility: Column types shared by every model.  ``MoneyType`` stores a
    domain ``Money`` as a BIGINT count of cents so that amounts round-trip
    through the database without any decimal or float conversion.
Architecture position: Kernel > DB.  May import from domain/values only.
"""

from typing import Annotated

from sqlalchemy import BigInteger, String
from sqlalchemy.types import TypeDecorator

from envelope_kernel.domain.values import Money


class MoneyType(TypeDecorator):
    """Money <-> BIGINT cents."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Money):
            return value.cents
        raise TypeError(f"MoneyType expects Money, got {type(value).__name__}")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Money(int(value))


# Short names and free text
ShortText = Annotated[str, String(100)]
LongText = Annotated[str, String(4000)]
