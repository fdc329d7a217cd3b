from decimal import Decimal
from typing import List
from uuid import UUID
from pydantic import BaseModel


class IndexationResult(BaseModel):
    year: int
    percentage: Decimal
    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    lease_ids: List[UUID] = []

    def summary(self) -> str:
        return (f"year={self.year} percentage={self.percentage} indexed={self.indexed} "
                f"skipped={self.skipped} failed={self.failed}")


class ExpiryNotificationResult(BaseModel):
    created: int = 0
    already_notified: int = 0

    def summary(self) -> str:
        return f"created={self.created} already_notified={self.already_notified}"
