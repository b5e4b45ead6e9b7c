# Import models here so Alembic can discover them via metadata
from .base import Base  # noqa: F401
from .application import Application  # noqa: F401
from .purchase import Purchase  # noqa: F401
from .password_token import PasswordToken  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
