"""Request context middleware: tenant and calling seller"""
from typing import Optional
from uuid import UUID

import bcrypt
from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy import select
from starlette.middleware.base import BaseHTTPMiddleware

from leadboard.core.config import settings
from leadboard.core.database import AsyncSessionLocal
from leadboard.models import Seller, Tenant, TenantStatus
from leadboard.utils.logger import logger


class TenantAuthenticationError(Exception):
    """Raised when the request cannot be bound to a tenant or seller"""

    def __init__(self, message: str, status_code: int = 401):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Bind every API request to a tenant and, when the user id header is
    present, to a seller of that tenant.

    Multi-tenant mode (MULTI_TENANT_ENABLED=True) requires the tenant slug
    and API key headers and checks the key against its bcrypt hash.
    Single-tenant mode uses DEFAULT_TENANT_SLUG.

    Sets request.state.tenant, tenant_id, tenant_slug and seller_id
    (None when the header is absent; routes needing a seller reject that).
    """

    EXCLUDED_PREFIXES = ("/health", "/docs", "/redoc", "/openapi.json")

    def _is_excluded(self, path: str) -> bool:
        return path == "/" or path.startswith(self.EXCLUDED_PREFIXES)

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or self._is_excluded(request.url.path):
            return await call_next(request)

        try:
            async with AsyncSessionLocal() as db:
                tenant = await self._resolve_tenant(db, request)
                seller_id = await self._resolve_seller(db, request, tenant)
        except TenantAuthenticationError as e:
            logger.warning(f"Request rejected for {request.url.path}: {e.message}")
            return JSONResponse(status_code=e.status_code, content={"error": e.message})
        except Exception as e:
            logger.error(f"Unexpected error in TenantMiddleware: {e}", exc_info=True)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})

        request.state.tenant = tenant
        request.state.tenant_id = tenant.id
        request.state.tenant_slug = tenant.slug
        request.state.seller_id = seller_id

        response = await call_next(request)
        response.headers["X-Tenant-Slug"] = tenant.slug
        return response

    async def _resolve_tenant(self, db, request: Request) -> Tenant:
        if not settings.MULTI_TENANT_ENABLED:
            tenant = await self._tenant_by_slug(db, settings.DEFAULT_TENANT_SLUG)
            if tenant is None:
                raise TenantAuthenticationError("Default tenant not configured", status_code=500)
            return tenant

        slug = request.headers.get(settings.TENANT_ID_HEADER)
        api_key = request.headers.get(settings.API_KEY_HEADER)
        for header, value in ((settings.TENANT_ID_HEADER, slug), (settings.API_KEY_HEADER, api_key)):
            if not value:
                raise TenantAuthenticationError(f"Missing {header} header", status_code=400)

        tenant = await self._tenant_by_slug(db, slug)
        if tenant is None:
            raise TenantAuthenticationError(f"Tenant '{slug}' not found", status_code=404)
        if tenant.status != TenantStatus.ACTIVE or not tenant.is_active:
            raise TenantAuthenticationError(
                f"Tenant '{slug}' is not active (status: {tenant.status.value})",
                status_code=403,
            )
        if not tenant.api_key_hash:
            raise TenantAuthenticationError(f"Tenant '{slug}' has no API key configured", status_code=403)
        if not bcrypt.checkpw(api_key.encode("utf-8"), tenant.api_key_hash.encode("utf-8")):
            raise TenantAuthenticationError("Invalid API key", status_code=401)
        return tenant

    async def _resolve_seller(self, db, request: Request, tenant: Tenant) -> Optional[UUID]:
        """Seller ids are only trusted within the resolved tenant"""
        raw_id = request.headers.get(settings.USER_ID_HEADER)
        if not raw_id:
            return None

        try:
            seller_id = UUID(raw_id)
        except ValueError:
            raise TenantAuthenticationError(f"Invalid {settings.USER_ID_HEADER} header", status_code=400)

        result = await db.execute(
            select(Seller.is_active).where(Seller.id == seller_id, Seller.tenant_id == tenant.id)
        )
        is_active = result.scalar_one_or_none()
        if not is_active:
            raise TenantAuthenticationError("Seller not found for this tenant", status_code=403)
        return seller_id

    @staticmethod
    async def _tenant_by_slug(db, slug: str) -> Optional[Tenant]:
        result = await db.execute(select(Tenant).where(Tenant.slug == slug))
        return result.scalar_one_or_none()
