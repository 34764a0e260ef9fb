import logging
import os
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

# Configure file + console logging
log_file = os.path.join(os.path.dirname(__file__), "..", "logs.txt")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler(log_file, mode="a"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)

from feasibility.api.routes import router
from feasibility.errors import FeasibilityError

app = FastAPI(title="Business Feasibility Engine", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def validation_message(errors: list[dict]) -> str:
    """First validation error as a single human-readable sentence."""
    if not errors:
        return "Invalid request"
    err = errors[0]
    field = str(err.get("loc", ["request"])[-1])
    if err.get("type") == "missing":
        return f"{field} is required"
    msg = str(err.get("msg", "Invalid request"))
    return msg.removeprefix("Value error, ")


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": validation_message(exc.errors())})


@app.exception_handler(FeasibilityError)
async def handle_feasibility_error(request: Request, exc: FeasibilityError):
    logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.user_message})


app.include_router(router)

logger.info("Business Feasibility Engine started")


@app.get("/")
async def root():
    return {"message": "Business Feasibility Engine API", "docs": "/docs"}
