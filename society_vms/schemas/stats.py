from pydantic import BaseModel


class AdminStatsOut(BaseModel):
    date: str
    todayVisitors: int = 0
    pendingApprovals: int = 0
    approvedToday: int = 0
    deniedToday: int = 0


class SweepResultOut(BaseModel):
    deleted: int
    cutoff: str
