from pydantic import BaseModel


class BookingSweepResult(BaseModel):
    meeting_rooms_completed: int = 0
    flex_days_completed: int = 0

    def summary(self) -> str:
        return (f"meeting_rooms_completed={self.meeting_rooms_completed} "
                f"flex_days_completed={self.flex_days_completed}")
