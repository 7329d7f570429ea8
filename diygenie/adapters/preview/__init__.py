"""
Preview providers: local stub and remote image service.
"""
from .stub import StubPreviewProvider
from .decor8 import Decor8PreviewProvider

__all__ = ["StubPreviewProvider", "Decor8PreviewProvider"]
