import time
from typing import Any, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger
from pydantic import BaseModel

from . import config
from .errors import AuthError, LedgerError, ValidationError
from .ledger import Ledger
from .log import setup_logging
from .store import JsonFileStore

app = FastAPI(title="deposit-service")

_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in config.ALLOW_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.on_event("startup")
def on_start():
    setup_logging(config.LOG_LEVEL)
    logger.info(f"deposit-service: data file {config.DATA_FILE}")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path} status={response.status_code} "
        f"duration={time.time() - start:.3f}s"
    )
    return response


def get_ledger() -> Ledger:
    return Ledger(JsonFileStore(config.DATA_FILE))


def get_user(
    auth: Optional[str] = Header(default=None, alias="Authorization"),
    ledger: Ledger = Depends(get_ledger),
) -> str:
    return ledger.authenticate(auth)


class CredentialsIn(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


async def get_amount(request: Request, user: str = Depends(get_user)) -> Any:
    # read after get_user so a bad token wins over a bad body
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("amount must be a positive number")
    return body.get("amount") if isinstance(body, dict) else None


# body errors are reported the same way as bad field values
_BODY_ERRORS = {
    "/api/register": lambda: ValidationError("username and password are required"),
    "/api/login": lambda: AuthError("invalid credentials"),
}


@app.exception_handler(LedgerError)
async def ledger_error(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def body_error(request: Request, exc: RequestValidationError):
    make = _BODY_ERRORS.get(request.url.path, ValidationError)
    return await ledger_error(request, make())


@app.exception_handler(Exception)
async def server_error(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"{request.method} {request.url.path} failed")
    return JSONResponse(status_code=500, content={"error": "Server error", "details": str(exc)})


@app.post("/api/register", status_code=201)
def register(body: CredentialsIn, ledger: Ledger = Depends(get_ledger)):
    ledger.register(body.username, body.password)
    return {"message": "registration successful"}


@app.post("/api/login")
def login(body: CredentialsIn, ledger: Ledger = Depends(get_ledger)):
    return {"token": ledger.login(body.username, body.password)}


@app.get("/api/account")
def account(user=Depends(get_user), ledger: Ledger = Depends(get_ledger)):
    return ledger.get_account(user)


@app.post("/api/deposit")
def deposit(amount=Depends(get_amount), user=Depends(get_user), ledger: Ledger = Depends(get_ledger)):
    return {"balance": ledger.deposit(user, amount)}


@app.post("/api/withdraw")
def withdraw(amount=Depends(get_amount), user=Depends(get_user), ledger: Ledger = Depends(get_ledger)):
    return {"balance": ledger.withdraw(user, amount)}


@app.get("/api/transactions")
def transactions(user=Depends(get_user), ledger: Ledger = Depends(get_ledger)):
    return {"transactions": [t.model_dump(mode="json") for t in ledger.get_transactions(user)]}


@app.api_route("/api/{rest:path}", methods=_METHODS)
def not_found(rest: str, user=Depends(get_user)):
    return JSONResponse(status_code=404, content={"error": "Not Found"})


@app.options("/{rest:path}")
def preflight(rest: str):
    return Response(status_code=204, headers=_CORS_HEADERS)


@app.api_route("/{rest:path}", methods=_METHODS, response_class=PlainTextResponse)
def banner(rest: str):
    return "Personal deposit management API is running"


def run():
    setup_logging(config.LOG_LEVEL)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_config=None)


if __name__ == "__main__":
    run()
