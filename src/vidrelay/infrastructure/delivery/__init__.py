"""Delivery package."""

from vidrelay.infrastructure.delivery.pipeline import DeliveryPipeline

__all__ = ["DeliveryPipeline"]
