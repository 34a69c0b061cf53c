"""ORM model exports for convenient imports elsewhere in the app."""

from retailer_desk.models.base import Base
from retailer_desk.models.region import Area, Distributor, Region, Territory
from retailer_desk.models.retailer import Retailer
from retailer_desk.models.sales_rep import SalesRep, UserRole
from retailer_desk.models.sales_rep_retailer import SalesRepRetailer

__all__ = [
    "Base",
    "Region",
    "Area",
    "Territory",
    "Distributor",
    "Retailer",
    "SalesRep",
    "UserRole",
    "SalesRepRetailer",
]
