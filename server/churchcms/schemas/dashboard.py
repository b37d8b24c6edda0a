from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_members: int
    active_members: int
    inactive_members: int
    upcoming_programs: int
    birthdays_today: int
    birthdays_this_week: int
    total_income: float
    total_expense: float
    balance: float
    sms_sent: int
    sms_failed: int
    attendance_rate: float
