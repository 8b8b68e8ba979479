"""Wire settings, adapters and services into a ready intake pipeline."""

from __future__ import annotations

from ..application.ports.content_normalizer import ContentNormalizerPort
from ..application.ports.ledger_store import LedgerRegistryPort
from ..application.services.enforcement import EnforcementService
from ..application.services.fingerprint_extractor import FingerprintExtractor
from ..application.services.intake_pipeline import IntakePipeline
from .adapters.exiftool_normalizer import ExiftoolNormalizerAdapter
from .adapters.sqlite_ledger import SqliteLedgerRegistry
from .config.settings import Settings


def build_normalizer(settings: Settings) -> ExiftoolNormalizerAdapter:
    return ExiftoolNormalizerAdapter(
        executable=settings.normalizer.executable,
        args=settings.normalizer.args,
        chunk_size=settings.normalizer.chunk_size,
        timeout_seconds=settings.normalizer.timeout_seconds,
    )


def build_ledger_registry(settings: Settings) -> SqliteLedgerRegistry:
    return SqliteLedgerRegistry(
        root_dir=settings.ledger.dir,
        busy_timeout_seconds=settings.ledger.busy_timeout_seconds,
    )


def build_extractor(settings: Settings, normalizer: ContentNormalizerPort | None = None) -> FingerprintExtractor:
    return FingerprintExtractor(
        normalizer=normalizer or build_normalizer(settings),
        normalize_max_bytes=settings.intake.normalize_max_bytes,
    )


def build_intake_pipeline(
    settings: Settings,
    registry: LedgerRegistryPort | None = None,
    normalizer: ContentNormalizerPort | None = None,
) -> IntakePipeline:
    """
    Build an intake pipeline from settings.

    The host starts it once (`await pipeline.start()` or `async with`) and calls
    `pipeline.on_item(room, upload)` from its file-upload hook. The caller owns
    the ledger registry and closes it at shutdown.

    Args:
        settings: Loaded settings
        registry: Ledger registry (default: SQLite ledgers under settings.ledger.dir)
        normalizer: Content normalizer (default: exiftool)
    """
    return IntakePipeline(
        ledgers=registry or build_ledger_registry(settings),
        extractor=build_extractor(settings, normalizer),
        enforcer=EnforcementService(settings.enforcement_policy()),
        policy=settings.intake_policy(),
    )
