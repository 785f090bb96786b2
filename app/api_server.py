from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from flashkart_pricing.comparison import CartLine
from flashkart_pricing.service import PriceComparisonService


class CartLineRequest(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1, le=999)


class CompareCartRequest(BaseModel):
    items: list[CartLineRequest] = Field(min_length=1)


def create_app(service: PriceComparisonService) -> FastAPI:
    app = FastAPI(title="Flash Kart Price Book", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://127.0.0.1:5173",
            "http://127.0.0.1:8080",
            "http://localhost:5173",
            "http://localhost:8080",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> dict:
        return {
            "status": "ok",
            "app": "flashkart-pricing",
            "stats": service.stats(),
        }

    @app.get("/api/stores")
    def stores() -> dict:
        return {"stores": service.store_directory()}

    @app.get("/api/live-prices")
    def live_prices(
        category: str | None = None,
        storeId: str | None = None,
        productId: str | None = None,
    ) -> dict:
        try:
            return service.live_prices(category=category, store_id=storeId, product_id=productId)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.get("/api/products/{product_id}")
    def product(product_id: str) -> dict:
        try:
            return service.get_product(product_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/api/cart/compare")
    def compare_cart(request: CompareCartRequest) -> dict:
        try:
            lines = [CartLine(product_id=item.product_id, quantity=item.quantity) for item in request.items]
            return service.compare_cart(lines).as_dict()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    return app


service = PriceComparisonService(root_dir=ROOT_DIR)
app = create_app(service)
