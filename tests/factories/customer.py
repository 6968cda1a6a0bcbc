"""
Customer test factory.

Generates realistic customer payloads for testing.
"""

import factory
from faker import Faker

fake = Faker()


class CustomerFactory(factory.Factory):
    """
    Factory for generating Customer payloads.

    Usage:
        payload = CustomerFactory()
        payload = CustomerFactory(name="Ada Lovelace")
        payloads = CustomerFactory.create_batch(5)
    """

    class Meta:
        model = dict

    name = factory.LazyFunction(fake.name)
    email = factory.LazyFunction(lambda: fake.unique.email().lower())
    phone = factory.LazyFunction(lambda: fake.numerify("+1 555 ### ####"))
    address = factory.LazyFunction(fake.street_address)


class CustomerWithoutEmailFactory(CustomerFactory):
    """Walk-in customer who gave no email; no notifications are sent."""

    email = None
