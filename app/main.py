from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uuid
import logging
import time

from app.services.mockup_service import MockupService
from app.services.override_store import OverrideStore
from app.dependencies import get_mockup_service, get_override_store
from app.implementations.cloudinary.asset_parser import parse_asset_identifier
from app.schemas.mockup_schemas import (
    AssetIdentifierResponse,
    AssetParseRequest,
    CartThumbRequest,
    ErrorResponse,
    MockupUrlResponse,
    OverrideResponse,
    OverrideUpdateRequest,
    OverrideValueResponse,
    PlacementSignatureRequest,
    PlacementSignatureResponse,
    ProductMockupRequest,
    ProductOverlayRequest,
    WarmUrlsRequest,
    WarmUrlsResponse,
)
from app.utils.logging_config import setup_logging, get_logger
from app.utils.placements import build_placement_signature, normalize_placements_for_key
from app.config import settings

# Setup logging
logger = setup_logging(
    log_level=logging.DEBUG if settings.DEBUG else logging.INFO,
    log_to_file=settings.LOG_TO_FILE,
)

# Create the FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="API for compiling CDN transform URLs that place company logos on product images",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = str(uuid.uuid4())
    logger.info(f"Request {request_id} started: {request.method} {request.url.path}")

    start_time = time.time()
    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        logger.info(f"Request {request_id} completed: {response.status_code} in {process_time:.4f}s")
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(f"Request {request_id} failed after {process_time:.4f}s: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={"detail": f"Internal server error: {str(e)}"}
        )

# Add exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"}
    )

def _compile(name: str, build):
    """Run a generator, mapping failures to HTTP errors"""
    req_logger = get_logger(__name__)
    try:
        url = build()
        req_logger.info(f"Compiled {name} mockup URL")
        return {"url": url}
    except ValueError as e:
        req_logger.warning(f"Validation error: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        req_logger.error(f"Error compiling {name} mockup: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error compiling mockup: {str(e)}")

@app.get("/")
async def root():
    """Health check endpoint"""
    logger.debug("Health check endpoint called")
    return {"status": "ok", "message": "Logo Mockup Compiler API is running"}

@app.post("/assets/parse", response_model=AssetIdentifierResponse)
async def parse_asset(payload: AssetParseRequest):
    """Split a CDN delivery URL into cloud, overlay id, base asset and delivery type.

    Malformed URLs yield empty fields rather than an error.
    """
    identifier = parse_asset_identifier(payload.url)
    return AssetIdentifierResponse(
        cloud=identifier.cloud,
        overlay_id=identifier.overlay_id,
        base_asset=identifier.base_asset,
        delivery=identifier.delivery,
    )

@app.post(
    "/mockups/product",
    response_model=MockupUrlResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def product_mockup(
    payload: ProductMockupRequest,
    mockup_service: MockupService = Depends(get_mockup_service)
):
    """
    Compile the product image mockup URL

    - **product**: Product record with `thumbnail`, `thumbnail_meta`, `acf` and `placement_coordinates`
    - **logos**: Logo set (`logo_darker`, `logo_lighter`, `back_darker`, `back_lighter`)
    - **options.max_width**: Target width; omit to place logos in absolute pixels
    - **options.color_index**: Color variant of a Group product (default: 0)
    - **options.override_scope**: Editor session whose back/front toggles apply
    - **options.page_placement_overrides**: Page-level placements keyed by product id
    """
    return _compile("product", lambda: mockup_service.generate_product_image_url(
        payload.product, payload.logos, payload.options
    ))

@app.post(
    "/mockups/product/overlay",
    response_model=MockupUrlResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def product_overlay_mockup(
    payload: ProductOverlayRequest,
    mockup_service: MockupService = Depends(get_mockup_service)
):
    """Compile the product image with a tinted box over every placement"""
    return _compile("overlay", lambda: mockup_service.generate_product_image_url_with_overlay(
        payload.product, payload.logos, payload.options
    ))

@app.post(
    "/mockups/cart/thumb",
    response_model=MockupUrlResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def cart_thumb_mockup(
    payload: CartThumbRequest,
    mockup_service: MockupService = Depends(get_mockup_service)
):
    """Compile the cart row thumbnail for a cart line"""
    return _compile("cart thumb", lambda: mockup_service.generate_cart_thumb_url(
        payload.item, payload.logos, payload.options
    ))

@app.post(
    "/mockups/cart/hover",
    response_model=MockupUrlResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def cart_hover_mockup(
    payload: CartThumbRequest,
    mockup_service: MockupService = Depends(get_mockup_service)
):
    """Compile the cart row hover preview for a cart line"""
    return _compile("cart hover", lambda: mockup_service.generate_hover_thumb_url(
        payload.item, payload.logos, payload.options
    ))

@app.post("/mockups/warm-urls", response_model=WarmUrlsResponse)
async def warm_urls(
    payload: WarmUrlsRequest,
    mockup_service: MockupService = Depends(get_mockup_service)
):
    """List the mockup URLs a cache warmer should request for the given products"""
    urls = mockup_service.collect_warm_urls(
        payload.products,
        payload.logos,
        colors_per_product=payload.colors_per_product,
        max_width=payload.max_width,
    )
    return {"urls": urls}

@app.post("/placements/signature", response_model=PlacementSignatureResponse)
async def placement_signature(payload: PlacementSignatureRequest):
    """Signature of the active/back-forced placements and a strict equality key"""
    return {
        "signature": build_placement_signature(payload.placements),
        "key": normalize_placements_for_key(payload.placements),
    }

@app.put(
    "/overrides/{scope}/{product_id}",
    response_model=OverrideResponse,
    responses={400: {"model": ErrorResponse}}
)
async def set_overrides(
    scope: str,
    product_id: str,
    payload: OverrideUpdateRequest,
    store: OverrideStore = Depends(get_override_store)
):
    """Force placements of a product to the back ("Back") or default ("Default") logo"""
    req_logger = get_logger(__name__)
    try:
        store.set_force_back_overrides(product_id, payload.mapping, scope=scope)
    except ValueError as e:
        req_logger.warning(f"Validation error: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    req_logger.info(f"Overrides updated for product {product_id} in scope {scope}")
    return OverrideResponse(
        scope=scope, product_id=product_id, overrides=store.get_overrides(product_id, scope=scope)
    )

@app.get("/overrides/{scope}/{product_id}", response_model=OverrideResponse)
async def list_overrides(
    scope: str,
    product_id: str,
    store: OverrideStore = Depends(get_override_store)
):
    """All overrides recorded for a product in a scope"""
    return OverrideResponse(
        scope=scope, product_id=product_id, overrides=store.get_overrides(product_id, scope=scope)
    )

@app.get("/overrides/{scope}/{product_id}/{name}", response_model=OverrideValueResponse)
async def get_override(
    scope: str,
    product_id: str,
    name: str,
    store: OverrideStore = Depends(get_override_store)
):
    """The forced choice for one placement, null when none was recorded"""
    return OverrideValueResponse(
        scope=scope,
        product_id=product_id,
        name=name,
        value=store.get_override_for(product_id, name, scope=scope),
    )

@app.delete("/overrides/{scope}/{product_id}")
async def clear_product_overrides(
    scope: str,
    product_id: str,
    store: OverrideStore = Depends(get_override_store)
):
    """Drop the overrides of one product in a scope"""
    store.clear_force_back_overrides(product_id, scope=scope)
    get_logger(__name__).info(f"Overrides cleared for product {product_id} in scope {scope}")
    return {"status": "success", "message": f"Overrides for product {product_id} cleared"}

@app.delete("/overrides/{scope}")
async def clear_scope(
    scope: str,
    store: OverrideStore = Depends(get_override_store)
):
    """Drop every override of an editor session"""
    store.clear_force_back_scope(scope)
    get_logger(__name__).info(f"Override scope {scope} cleared")
    return {"status": "success", "message": f"Override scope {scope} cleared"}
