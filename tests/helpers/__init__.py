"""Test helper utilities for engine and surface tests."""

from tests.helpers.fake_order_client import ClientCall, FakeOrderClient, make_order

__all__ = [
    "ClientCall",
    "FakeOrderClient",
    "make_order",
]
