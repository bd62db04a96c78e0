"""Application layer package."""

from vidrelay.application.orchestrator import UploadOrchestrator, describe_failure
from vidrelay.application.factories import CompressorFactory, ServiceContainer, build_services

__all__ = ["UploadOrchestrator", "describe_failure", "CompressorFactory", "ServiceContainer", "build_services"]
