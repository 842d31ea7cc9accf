"""
Delivery orchestrator - composes path resolution, token checks, the
transform cache and the range streamer into the two request kinds.

Invariants:
- Paths are canonicalised before any other component sees them
- Token checks precede every filesystem and cache operation
- Tokens are bound to the canonical relative path
- Derived images are served whole; Range is only honoured for originals
"""

from __future__ import annotations

import asyncio
import logging

from fastapi.responses import Response

from src.components.paths import PathResolver, ResolvedPath
from src.components.signing import TokenService, parse_expires
from src.components.streaming import RangeStreamer
from src.components.transform import TransformCache, TransformOptions
from src.core.entities import Asset
from src.core.errors import AuthError, NotFoundError, ValidationError

from .models import SignedUrl, TransformQuery
from .ports import AssetCatalogPort

logger = logging.getLogger(__name__)

# Derived files are content-addressed, so public ones never change under a URL.
CACHE_CONTROL_PUBLIC_DERIVED = "public, max-age=31536000, immutable"
CACHE_CONTROL_PRIVATE = "private, no-store"


class DeliveryOrchestrator:
    """Entry point for private fetches, transforms and signed URL issuance."""

    def __init__(
        self,
        *,
        resolver: PathResolver,
        tokens: TokenService,
        cache: TransformCache,
        streamer: RangeStreamer,
        catalog: AssetCatalogPort,
        max_transform_dimension: int | None = None,
    ) -> None:
        self.resolver = resolver
        self.tokens = tokens
        self.cache = cache
        self.streamer = streamer
        self.catalog = catalog
        self.max_transform_dimension = max_transform_dimension

    # --- Shared steps ---

    def _describe(self, path: str | None) -> Asset:
        if not path:
            raise ValidationError("Missing ?path parameter")
        return self.catalog.describe(self.resolver.normalize(path))

    def _authorize(self, asset: Asset, token: str | None, expires: str | None) -> None:
        if not asset.is_private:
            return
        if not self.tokens.verify(asset.relative_path, token, expires):
            logger.warning("Rejected token for %s", asset.relative_path)
            raise AuthError()

    async def _locate(self, asset: Asset) -> ResolvedPath:
        resolved = await asyncio.to_thread(self.resolver.resolve, asset.relative_path)
        if not await asyncio.to_thread(resolved.absolute.is_file):
            raise NotFoundError(asset.relative_path)
        return resolved

    # --- Entry points ---

    async def fetch_private(
        self,
        path: str | None,
        *,
        token: str | None = None,
        expires: str | None = None,
        range_header: str | None = None,
    ) -> Response:
        """Serve an original asset, honouring Range."""
        asset = self._describe(path)
        self._authorize(asset, token, expires)
        resolved = await self._locate(asset)

        headers = {"Cache-Control": CACHE_CONTROL_PRIVATE} if asset.is_private else None
        return await self.streamer.serve(
            resolved.absolute, asset.media_type, range_header, headers=headers
        )

    async def transform_and_serve(self, query: TransformQuery) -> Response:
        """Serve a resized/reformatted derivative of an image asset."""
        asset = self._describe(query.path)
        self._authorize(asset, query.token, query.expires)

        options = TransformOptions.parse(
            width=query.width,
            height=query.height,
            fit=query.fit,
            format=query.format,
            max_dimension=self.max_transform_dimension,
        )
        resolved = await self._locate(asset)
        derived = await self.cache.resolve(resolved, options)

        cache_control = CACHE_CONTROL_PRIVATE if asset.is_private else CACHE_CONTROL_PUBLIC_DERIVED
        return await self.streamer.serve(
            derived, options.media_type, None, headers={"Cache-Control": cache_control}
        )

    async def issue_signed_url(
        self,
        path: str | None,
        *,
        ttl: str | int | None = None,
        base_url: str = "",
    ) -> SignedUrl:
        """Sign a private asset path for `ttl` seconds (configured default if None)."""
        asset = self._describe(path)
        if not asset.is_private:
            raise ValidationError("File is not private")

        ttl_seconds: int | None = None
        if ttl is not None and ttl != "":
            ttl_seconds = parse_expires(ttl)
            if ttl_seconds is None:
                raise ValidationError("ttl must be a positive integer")

        await self._locate(asset)
        capability = self.tokens.sign(asset.relative_path, ttl_seconds)
        return SignedUrl(
            url=f"{base_url.rstrip('/')}/private?{capability.query_string()}",
            token=capability.token,
            expires=capability.expires_at,
        )
