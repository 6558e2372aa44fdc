import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    SHIPPER = "shipper"
    DESIGNER = "designer"
    CUSTOMER = "customer"


class WorkItemType(str, enum.Enum):
    ORDER = "order"
    REQUEST_QUOTE = "request_quote"


# ── Orders ─────────────────────────────────────────────────────────────


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPING = "shipping"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELED = "canceled"


class ShippingMethod(str, enum.Enum):
    STANDARD = "standard"
    EXPRESS = "express"


class ShippingPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ── Request quotes ─────────────────────────────────────────────────────


class QuoteStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    QUOTED = "quoted"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class RequestQuoteType(str, enum.Enum):
    PRODUCT = "product"
    CUSTOM = "custom"


class PrintingMethod(str, enum.Enum):
    DTG = "DTG"
    DTF = "DTF"
    SCREEN_PRINT = "Screen Print"
    VINYL = "Vinyl"
    EMBROIDERY = "Embroidery"


class RevisionReason(str, enum.Enum):
    CUSTOMER_REQUEST = "customer_request"
    ADMIN_IMPROVEMENT = "admin_improvement"
    COST_CHANGE = "cost_change"
    TIMELINE_CHANGE = "timeline_change"
    MATERIAL_CHANGE = "material_change"


class FeedbackAspect(str, enum.Enum):
    PRICE = "price"
    TIMELINE = "timeline"
    MATERIALS = "materials"
    DESIGN = "design"
    OTHER = "other"


# ── Workflow audit & events ────────────────────────────────────────────


class WorkflowAction(str, enum.Enum):
    TRANSITION = "TRANSITION"
    CLAIM = "CLAIM"
    RELEASE = "RELEASE"
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"
    REASSIGN = "REASSIGN"
    SHIPPING_IMAGE = "SHIPPING_IMAGE"
    REVISION = "REVISION"
    DESIGN_SET = "DESIGN_SET"
