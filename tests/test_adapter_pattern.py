import unittest
from typing import Annotated, Protocol
from unittest.mock import MagicMock

from wirebox import Container, Inject, Lifecycle


class Contains:  # noqa: PLW1641
    def __init__(self, substring):
        self.substring = substring

    def __repr__(self):
        return f"Contains({self.substring!r})"

    def __eq__(self, other):
        return isinstance(other, str) and self.substring in other


class PaymentClient(Protocol):
    def charge(self, order_id: str, amount_cents: int) -> None: ...


class InfoLogger(Protocol):
    def info(self, msg: object, *args: object) -> None: ...


class NullLogger:
    def info(self, msg: object, *args: object) -> None:
        pass


class StripeSdk:
    def pay(self, amount_usd: float, reference: str) -> bool:
        print(f"Stripe charged ${amount_usd} for {reference}")  # noqa: T201
        return True


class StripeAdapter:
    def __init__(self, sdk: StripeSdk, logger: InfoLogger, usd_per_cent: float = 0.01) -> None:
        self._logger = logger
        self._sdk = sdk
        self._usd_per_cent = usd_per_cent

    def charge(self, order_id: str, amount_cents: int) -> None:
        self._logger.info("adapting to stripe sdk api")
        amount_usd = amount_cents * self._usd_per_cent
        ok = self._sdk.pay(amount_usd, reference=order_id)
        if not ok:
            msg = "Stripe payment failed"
            raise RuntimeError(msg)


class Checkout:
    payments: Annotated[PaymentClient, Inject("name,type")]

    def pay(self, order_id: str, amount_cents: int) -> None:
        self.payments.charge(order_id, amount_cents)


class TestWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.register(StripeAdapter, provides=PaymentClient)
        self.stripe_sdk = StripeSdk()
        self.stripe_sdk.pay = MagicMock(wraps=self.stripe_sdk.pay)
        self.cont.register(lambda: self.stripe_sdk, provides=StripeSdk)
        self.logger = NullLogger()
        self.logger.info = MagicMock(wraps=self.logger.info)
        self.cont.register(lambda: self.logger, Lifecycle.SINGLETON, provides=InfoLogger)

    def test_adapter_calls_adaptee(self):
        client: PaymentClient = self.cont.resolve(PaymentClient)
        client.charge("order-123", 5000)

        assert self.stripe_sdk.pay.call_count == 1
        assert self.stripe_sdk.pay.call_args[0][0] == 0.01 * 5000
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-123"

        assert self.logger.info.call_args[0][0] == Contains("stripe sdk")

    def test_adapter_filled_into_consumer(self):
        checkout = Checkout()
        self.cont.fill(checkout)
        checkout.pay("order-7", 100)

        assert isinstance(checkout.payments, StripeAdapter)
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-7"


class TestQualifiedAdapters(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.register(StripeAdapter, provides=PaymentClient)
        self.cont.register(NullLogger, provides=InfoLogger)
        self.cont.register(StripeSdk)

        def make_euro_adapter(sdk: StripeSdk, logger: InfoLogger) -> PaymentClient:
            return StripeAdapter(sdk, logger, usd_per_cent=0.0108)

        self.cont.register(make_euro_adapter, qualifier="payments")

    def test_consumer_field_name_selects_qualified_adapter(self):
        # nested dependencies of the qualified adapter resolve with the default fill options
        checkout = Checkout()
        self.cont.fill(checkout)

        assert checkout.payments is self.cont.resolve(PaymentClient, qualifier="payments")
        assert checkout.payments is not self.cont.resolve(PaymentClient)
