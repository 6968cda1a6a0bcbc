"""
Service test factory.

Generates intake payloads for POST /services. `customerId` must be passed in.
"""

import factory
from faker import Faker

fake = Faker()


class ServiceFactory(factory.Factory):
    """
    Factory for generating Service intake payloads.

    Usage:
        payload = ServiceFactory(customerId=customer.id)
        payload = ServiceFactory(customerId=customer.id, estimatedFee=None)
    """

    class Meta:
        model = dict

    customerId = None
    deviceType = factory.LazyFunction(
        lambda: fake.random_element(["PHONE", "TABLET", "DESKTOP", "LAPTOP"])
    )
    brand = factory.LazyFunction(lambda: fake.random_element(["Apple", "Samsung", "Lenovo", "Dell"]))
    model = factory.LazyFunction(lambda: fake.bothify("Model-??##").upper())
    serialNumber = factory.LazyFunction(lambda: fake.bothify("SN########"))
    problemDescription = factory.LazyFunction(fake.sentence)
    accessories = "Charger"
    physicalCondition = "Minor scratches"
    estimatedFee = 1500


class PhoneServiceFactory(ServiceFactory):
    deviceType = "PHONE"
    brand = "Apple"
    model = "iPhone 13"
    imei = factory.LazyFunction(lambda: fake.numerify("###############"))
    problemDescription = "Screen cracked"


class LaptopServiceFactory(ServiceFactory):
    deviceType = "LAPTOP"
    brand = "Lenovo"
    model = "ThinkPad T14"
    problemDescription = "Does not power on"
