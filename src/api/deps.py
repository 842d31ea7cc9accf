from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request

from src.adapters.catalog import BucketAssetCatalog
from src.adapters.clock import SystemClock
from src.adapters.pillow_imaging import PillowImageTransformer
from src.app_shell.config import DeliveryConfig
from src.components.delivery import DeliveryOrchestrator
from src.components.paths import PathResolver
from src.components.signing import ClockPort, TokenService
from src.components.streaming import RangeStreamer
from src.components.transform import ImageTransformerPort, TransformCache


# --- Service Container ---
@dataclass(frozen=True)
class DeliveryServices:
    config: DeliveryConfig
    resolver: PathResolver
    tokens: TokenService
    cache: TransformCache
    streamer: RangeStreamer
    catalog: BucketAssetCatalog
    orchestrator: DeliveryOrchestrator


def build_services(
    config: DeliveryConfig,
    *,
    transformer: ImageTransformerPort | None = None,
    clock: ClockPort | None = None,
) -> DeliveryServices:
    """Wire every component from one configuration value."""
    resolver = PathResolver(config.storage_root)
    tokens = TokenService(
        config.signing_secret,
        clock=clock or SystemClock(),
        default_ttl_seconds=config.default_token_ttl_seconds,
        max_ttl_seconds=config.max_token_ttl_seconds,
    )
    cache = TransformCache(config.resolved_cache_root, transformer or PillowImageTransformer())
    streamer = RangeStreamer(chunk_size=config.stream_chunk_size)
    catalog = BucketAssetCatalog(public_prefix=config.public_prefix)
    orchestrator = DeliveryOrchestrator(
        resolver=resolver,
        tokens=tokens,
        cache=cache,
        streamer=streamer,
        catalog=catalog,
        max_transform_dimension=config.max_transform_dimension,
    )
    return DeliveryServices(
        config=config,
        resolver=resolver,
        tokens=tokens,
        cache=cache,
        streamer=streamer,
        catalog=catalog,
        orchestrator=orchestrator,
    )


# --- Dependencies ---
def get_services(request: Request) -> DeliveryServices:
    services: DeliveryServices | None = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Delivery services are not initialised")
    return services


def get_orchestrator(services: DeliveryServices = Depends(get_services)) -> DeliveryOrchestrator:
    return services.orchestrator
