import enum

class Role(str, enum.Enum):
    admin = "admin"
    warehouse = "warehouse"
    store_manager = "store_manager"

class LocationType(str, enum.Enum):
    warehouse = "warehouse"
    store = "store"

class OrderStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    rejected = "rejected"

class MovementType(str, enum.Enum):
    receipt = "RECEIPT"
    issue = "ISSUE"
    reserve = "RESERVE"
    unreserve = "UNRESERVE"

class DiscrepancyType(str, enum.Enum):
    normal = "normal"
    shortage = "shortage"
    excess = "excess"
