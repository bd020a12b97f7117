import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from fastapi import Body, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import cities
import languages
import orders
import products
from auth import (
    AuthGate,
    clear_session_cookie,
    get_auth_gate,
    require_admin,
    session_id,
    set_session_cookie,
)
from config import Settings, get_settings
from database import connect, ensure_indexes, get_db
from errors import InternalError, ShopError
from logging_config import add_context, clear_context, configure_logging
from report import build_report
from schemas import LoginRequest, StatusUpdate

logger = structlog.get_logger(__name__)

env_settings = Settings.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    current = app.state.settings
    configure_logging(current)
    if getattr(app.state, "db", None) is None:
        app.state.db = connect(current)
    db = app.state.db
    try:
        ensure_indexes(db)
        result = cities.initialize(db)
        logger.info("startup_complete", cities=result["count"])
    except PyMongoError as exc:
        logger.error("startup_database_error", error=str(exc))
    yield


app = FastAPI(title="Onyxia API", lifespan=lifespan)
app.state.settings = env_settings

app.add_middleware(
    CORSMiddleware,
    allow_origins=env_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
    max_age=86400,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    clear_context()
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    add_context(request_id=request_id, method=request.method, path=request.url.path)
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request_completed",
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - start) * 1000, 1),
    )
    response.headers["X-Request-ID"] = request_id
    return response


# Error rendering

def _error_response(request: Request, status_code: int, body: dict, cause: Optional[BaseException] = None):
    if cause is not None and request.app.state.settings.debug:
        body.setdefault("error", str(cause))
    return JSONResponse(status_code=status_code, content={"success": False, **body})


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", error_type=type(exc).__name__, message=exc.message,
                     exc_info=exc.__cause__ or exc)
    else:
        logger.info("request_rejected", error_type=type(exc).__name__, message=exc.message)
    body = {"message": exc.message, **exc.extra()}
    return _error_response(request, exc.status_code, body, exc.__cause__)


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("database_error", error=str(exc), exc_info=exc)
    error = InternalError("Internal server error")
    return _error_response(request, error.status_code, {"message": error.message}, exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = {".".join(str(p) for p in err["loc"] if p != "body"): err["msg"] for err in exc.errors()}
    return _error_response(request, 400, {"message": "Validation failed", "errors": fields})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error", error_type=type(exc).__name__, exc_info=exc)
    error = InternalError("Internal server error")
    return _error_response(request, error.status_code, {"message": error.message}, exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return _error_response(request, exc.status_code, {"message": message})


@app.get("/")
def read_root():
    return {"message": "Onyxia API Running"}


@app.get("/test")
def test_database(db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": settings.database_name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# Admin session

@app.post("/admin/login")
def admin_login(
    payload: LoginRequest,
    response: Response,
    previous_sid: Optional[str] = Depends(session_id),
    gate: AuthGate = Depends(get_auth_gate),
    settings: Settings = Depends(get_settings),
):
    sid = gate.login(payload.username, payload.password, previous_sid)
    set_session_cookie(response, settings, sid)
    return {"success": True, "message": "Login successful", "username": payload.username}


@app.get("/admin/verify")
def admin_verify(sid: Optional[str] = Depends(session_id), gate: AuthGate = Depends(get_auth_gate)):
    # always 200: a negative answer is a result, not a fault
    try:
        username = gate.verify(sid)
    except PyMongoError as exc:
        logger.error("session_lookup_failed", error=str(exc))
        return {"success": False, "authenticated": False, "message": "Session check failed"}
    if not username:
        return {"success": False, "authenticated": False, "message": "Not authenticated"}
    return {"success": True, "authenticated": True, "username": username}


@app.post("/admin/logout")
def admin_logout(
    response: Response,
    sid: Optional[str] = Depends(session_id),
    gate: AuthGate = Depends(get_auth_gate),
    settings: Settings = Depends(get_settings),
):
    gate.logout(sid)
    clear_session_cookie(response, settings)
    return {"success": True, "message": "Logged out"}


# Orders

@app.post("/orders", status_code=201)
def create_order(payload: Any = Body(None), db: Database = Depends(get_db)):
    order = orders.create_order(db, payload)
    return {
        "success": True,
        "message": "Order created successfully",
        "orderId": order["orderId"],
        "data": order,
    }


@app.get("/orders")
def list_orders(db: Database = Depends(get_db)):
    return {"success": True, "data": orders.list_orders(db)}


@app.get("/orders/report")
def order_report(db: Database = Depends(get_db), _admin: str = Depends(require_admin)):
    return {"success": True, "data": build_report(db)}


@app.get("/orders/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": orders.get_order(db, order_id)}


@app.patch("/orders/{order_id}/status")
@app.put("/orders/{order_id}")
def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    db: Database = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    order = orders.set_status(db, order_id, payload.status)
    return {"success": True, "message": "Order status updated successfully", "data": order}


@app.delete("/orders/{order_id}")
def delete_order(order_id: str, db: Database = Depends(get_db), _admin: str = Depends(require_admin)):
    order = orders.delete_order(db, order_id)
    return {"success": True, "message": "Order deleted successfully", "data": order}


# Products

@app.get("/products")
def list_products(request: Request, db: Database = Depends(get_db)):
    base_url = str(request.base_url)
    return [products.with_image_url(p, base_url) for p in products.list_products(db)]


@app.get("/products/home")
def list_home_products(request: Request, db: Database = Depends(get_db)):
    base_url = str(request.base_url)
    return [products.with_image_url(p, base_url) for p in products.list_home(db)]


@app.get("/products/{product_id}")
def get_product(product_id: str, request: Request, db: Database = Depends(get_db)):
    return products.with_image_url(products.get_product(db, product_id), str(request.base_url))


@app.post("/products", status_code=201)
def create_product(
    payload: dict = Body(...),
    db: Database = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    return {"success": True, "data": products.create_product(db, payload)}


@app.put("/products/{product_id}")
def update_product(
    product_id: str,
    payload: dict = Body(...),
    db: Database = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    return {"success": True, "data": products.update_product(db, product_id, payload)}


@app.delete("/products/{product_id}")
def delete_product(
    product_id: str,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _admin: str = Depends(require_admin),
):
    products.delete_product(db, product_id, settings.upload_dir)
    return {"success": True, "message": "Product deleted"}


# Cities

@app.get("/cities")
def list_cities(db: Database = Depends(get_db)):
    found = cities.list_all(db)
    if not found:
        cities.initialize(db)
        found = cities.list_all(db)
    return found


@app.get("/cities/init")
def init_cities(db: Database = Depends(get_db)):
    result = cities.initialize(db)
    return {"success": True, "message": "Cities initialized successfully", **result}


@app.put("/cities")
def update_city_fees(
    payload: Any = Body(None),
    db: Database = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    updates = payload.get("updates") if isinstance(payload, dict) else None
    updated = cities.update_fees(db, updates)
    return {"success": True, "message": "Fees updated successfully", "cities": updated}


# Languages

@app.get("/languages")
def list_languages(db: Database = Depends(get_db)):
    return {"success": True, "data": languages.list_entries(db)}


@app.put("/languages")
def save_languages(
    payload: Any = Body(None),
    db: Database = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    entries = payload.get("entries") if isinstance(payload, dict) else None
    return {"success": True, "data": languages.upsert_entries(db, entries)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=env_settings.port)
