from .user import User  # noqa: F401
from .member import Member  # noqa: F401
from .program import Program  # noqa: F401
from .attendance import Attendance, SundayAttendance  # noqa: F401
from .finance import FinanceTransaction  # noqa: F401
from .settings import ChurchSettings  # noqa: F401
from .notification import BirthdayEmailLog, InAppNotification, NotificationRecipient  # noqa: F401
from .sms_log import SmsLog  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
