import logging
from contextlib import asynccontextmanager
import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from tradedesk.config import settings
from tradedesk.core.errors import AuthenticationError, BackendError, ValidationFailed, WithdrawalInvalid
from tradedesk.routers import bots, strategies, wallet

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one pooled client shared by every request's BackendClient
    app.state.http = httpx.AsyncClient(
        timeout=settings.API_TIMEOUT,
        transport=httpx.AsyncHTTPTransport(retries=settings.API_RETRIES),
        headers={"Content-Type": "application/json"},
    )
    logger.info("Gateway started, backend %s", settings.API_BASE_URL)
    yield
    await app.state.http.aclose()

app = FastAPI(title="Tradedesk Gateway", lifespan=lifespan)

_allowed_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] or ["http://localhost:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationFailed)
async def validation_failed(request: Request, exc: ValidationFailed):
    content = {"detail": exc.message}
    if isinstance(exc, WithdrawalInvalid):
        content["errors"] = exc.errors
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(BackendError)
async def backend_error(request: Request, exc: BackendError):
    if isinstance(exc, AuthenticationError):
        content = {"detail": exc.message}
        if exc.signed_out:
            content["redirect"] = settings.SIGN_OUT_REDIRECT
        return JSONResponse(status_code=401, content=content)
    status_code = exc.status_code or 502
    if status_code >= 500:
        logger.error("Backend failure on %s: %s", request.url.path, exc.message)
        status_code = 502
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


app.include_router(strategies.router)
app.include_router(bots.router)
app.include_router(wallet.router)

@app.get("/health")
async def health():
    return {"status": "ok"}
