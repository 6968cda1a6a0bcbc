"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation. Factories build
camelCase request payloads as the front end sends them.
"""

from .user import UserFactory, AdminUserFactory
from .customer import CustomerFactory, CustomerWithoutEmailFactory
from .service import ServiceFactory, PhoneServiceFactory, LaptopServiceFactory

__all__ = [
    "UserFactory",
    "AdminUserFactory",
    "CustomerFactory",
    "CustomerWithoutEmailFactory",
    "ServiceFactory",
    "PhoneServiceFactory",
    "LaptopServiceFactory",
]
