"""
Shared Pydantic types for schema validation.

Money: Numeric columns come back from SQLAlchemy as Decimal; the front end
expects plain JSON numbers, so Decimal is coerced to float.
UUIDStr: Accepts both str and uuid.UUID objects, coercing UUID to str.
"""

from decimal import Decimal
from typing import Annotated
from pydantic import BeforeValidator

Money = Annotated[float, BeforeValidator(lambda v: float(v) if isinstance(v, Decimal) else v)]

UUIDStr = Annotated[str, BeforeValidator(lambda v: str(v) if not isinstance(v, str) else v)]
