"""
Delivery component - request orchestration for asset delivery.
"""

from .component import (
    CACHE_CONTROL_PRIVATE,
    CACHE_CONTROL_PUBLIC_DERIVED,
    DeliveryOrchestrator,
)
from .models import SignedUrl, TransformQuery
from .ports import AssetCatalogPort

__all__ = [
    "CACHE_CONTROL_PRIVATE",
    "CACHE_CONTROL_PUBLIC_DERIVED",
    "AssetCatalogPort",
    "DeliveryOrchestrator",
    "SignedUrl",
    "TransformQuery",
]
