"""Application services for orchestrating domain logic."""

from .enforcement import EnforcementService
from .fingerprint_extractor import FingerprintExtractor
from .intake_pipeline import IntakePipeline

__all__ = ["EnforcementService", "FingerprintExtractor", "IntakePipeline"]
