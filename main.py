import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import database
from errors import APIError, describe_validation_error
from mailer import NotificationGateway, build_transport
import auth
import chat
import dashboard
import policy
import resources
import site_settings
import team
import uploads

logging.basicConfig(level=config.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    if database.db is not None:
        try:
            database.ensure_indexes(database.db)
        except PyMongoError as e:
            logger.error("Could not ensure indexes: %s", e)
    # one transport for the life of the process
    app.state.notifier = NotificationGateway(build_transport())
    logger.info("Photoflow backend ready (environment=%s)", config.ENVIRONMENT)
    yield
    if database.client is not None:
        database.client.close()


app = FastAPI(title="Photoflow Back Office API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Range"],
)


@app.middleware("http")
async def limit_json_body(request: Request, call_next):
    content_type = request.headers.get("content-type", "")
    length = request.headers.get("content-length")
    if content_type.startswith("application/json") and length and length.isdigit() \
            and int(length) > config.MAX_JSON_BODY_BYTES:
        return JSONResponse(status_code=413, content={"message": "Request body too large"})
    return await call_next(request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and not isinstance(exc, APIError):
        # no route matched
        if request.url.path.startswith("/api/"):
            return JSONResponse(status_code=404, content={
                "message": "Endpoint not implemented",
                "path": request.url.path,
            })
        return PlainTextResponse("Not Found", status_code=404)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail},
                        headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": describe_validation_error(exc)})


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Database error"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
for name in resources.COLLECTIONS:
    app.include_router(resources.build_router(name), prefix=f"/api/{name}", tags=[name])
app.include_router(team.router, prefix="/api/team", tags=["team"])
app.include_router(policy.router, prefix="/api/policy", tags=["policy"])
app.include_router(site_settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(uploads.router, prefix="/api/uploads", tags=["uploads"])

# read-only public copy of the upload directory
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")


@app.get("/")
def root():
    return {"message": "Photoflow back office backend running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if config.DATABASE_NAME else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    if database.db is None:
        return response

    try:
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
