from enum import Enum


class LeaseStatus(str, Enum):
    draft = "draft"
    active = "active"
    ended = "ended"


class LeaseType(str, Enum):
    standard = "standard"
    flex = "flex"


class FlexPricingModel(str, Enum):
    monthly_unlimited = "monthly_unlimited"
    daily = "daily"
    credit_based = "credit_based"


class CustomerType(str, Enum):
    tenant = "tenant"
    external = "external"
