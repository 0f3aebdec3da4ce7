"""
KFA (Kamus Farmasi dan Alat Kesehatan) catalog API.

Read-only lookups of pharmaceutical products, medical devices and JKN
prices. Responses below 500 are returned as decoded JSON with a ``success``
flag; server errors and client-side failures become a ClientError dict.
"""

from typing import Any, Literal

from satusehat.config.endpoints import ApiFamily
from satusehat.config.logging import get_logger
from satusehat.constants import KFA_DEFAULT_PAGE, KFA_DEFAULT_PAGE_SIZE
from satusehat.errors import SatuSehatError
from satusehat.services.dispatcher import QueryParams, RequestDispatcher, RequestSpec

logger = get_logger(__name__)

ProductIdentifier = Literal["nie", "lkpp", "kfa"]
AlkesState = Literal["draft", "valid"]


def client_error(message: str, error_type: str = "unknown") -> dict[str, Any]:
    """Build the catalog's validation-error shape for a client-side failure."""
    return {
        "success": False,
        "detail": [{"loc": [], "msg": message, "type": error_type}],
    }


class KFA:
    """Catalog lookups across the kfa, kfa-v2 and kfa-v3 API versions."""

    def __init__(self, dispatcher: RequestDispatcher):
        self._dispatcher = dispatcher

    async def get_price_jkn(
        self,
        kfa_code: str,
        page: int = KFA_DEFAULT_PAGE,
        limit: int = KFA_DEFAULT_PAGE_SIZE,
        region_code: str | None = None,
        document_ref: str | None = None,
    ) -> dict[str, Any]:
        """
        Get JKN (national health insurance) prices of a product.

        Args:
            kfa_code: KFA product code
            page: Page number
            limit: Items per page
            region_code: JKN region, "regional1" to "regional6"
            document_ref: Reference document or legal basis
        """
        return await self._get(
            ApiFamily.KFA,
            "/farmalkes-price-jkn",
            {
                "page": page,
                "limit": limit,
                "kfa_code": kfa_code,
                "region_code": region_code or "",
                "document_ref": document_ref or "",
            },
        )

    async def get_product_detail(
        self,
        identifier: ProductIdentifier,
        code: str,
    ) -> dict[str, Any]:
        """
        Get the details of one product.

        Args:
            identifier: Code source; "nie" (BPOM marketing authorization),
                "lkpp" (government procurement agency) or "kfa"
            code: Product code in that source
        """
        return await self._get(
            ApiFamily.KFA2,
            "/products",
            {"identifier": identifier, "code": code},
        )

    async def get_products(
        self,
        product_type: str,
        page: int = KFA_DEFAULT_PAGE,
        size: int = KFA_DEFAULT_PAGE_SIZE,
        from_date: str | None = None,
        to_date: str | None = None,
        farmalkes_type: str | None = None,
        keyword: str | None = None,
        template_code: str | None = None,
        packaging_code: str | None = None,
    ) -> dict[str, Any]:
        """
        Search products with pagination.

        Dates use the YYYY-MM-DD format.
        """
        return await self._get(
            ApiFamily.KFA2,
            "/products/all",
            {
                "page": page,
                "size": size,
                "product_type": product_type,
                "from_date": from_date or "",
                "to_date": to_date or "",
                "farmalkes_type": farmalkes_type or "",
                "keyword": keyword or "",
                "template_code": template_code or "",
                "packaging_code": packaging_code or "",
            },
        )

    async def get_alkes(
        self,
        state: AlkesState,
        page: int = KFA_DEFAULT_PAGE,
        size: int = KFA_DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """List medical devices (alkes) in the given variant state."""
        return await self._get(
            ApiFamily.KFA3,
            "/alkes/products",
            {"page": page, "size": size, "state": state},
        )

    async def _get(self, api: ApiFamily, path: str, params: QueryParams) -> dict[str, Any]:
        try:
            response = await self._dispatcher.request(
                RequestSpec(api=api, path=path, params=params)
            )
            if response.status >= 500:
                raise ValueError(response.text())

            payload = response.json()
            if not isinstance(payload, dict):
                payload = {"data": payload}
            payload["success"] = response.ok
            return payload

        except (SatuSehatError, ValueError) as e:
            logger.warning("KFA request failed", path=path, error=str(e))
            return client_error(str(e))
