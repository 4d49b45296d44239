"""SQLAlchemy models package."""

# Import all models
from .book import Book  # noqa: F401
from .discount import MemberDiscount  # noqa: F401
from .notification import Notification  # noqa: F401
from .order import Order, OrderItem, OrderStatusEnum  # noqa: F401
from .order_state_event import OrderStateEvent, OrderStateEventTypeEnum  # noqa: F401
from .user import User, UserRoleEnum  # noqa: F401
