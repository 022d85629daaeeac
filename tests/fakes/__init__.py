# Fake implementations for testing

from .fake_admin import FakeAdmin
from .fake_registry import FakeRegistry, make_digest

__all__ = ["FakeAdmin", "FakeRegistry", "make_digest"]
