from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import admin, bookings, payments
from app.core.exceptions import BookingError

# ⭐ Import logging system
from app.core.logging_config import get_logger

logger = get_logger()

app = FastAPI(
    title="RideOnGo Booking API",
    version="1.0.0",
    description="Bike rental bookings, Razorpay payment reconciliation and admin booking console"
)

# ⭐ Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url.path}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url.path} -> {str(e)}")
        raise e


# ⭐ Domain errors -> HTTP, without exposing internal error names
@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    log_type = "payment" if request.url.path.startswith("/payments") else "booking"
    logger.bind(log_type=log_type).warning(
        f"{type(exc).__name__}: {exc} | {request.method} {request.url.path}"
    )
    detail = str(exc) if exc.expose_message else exc.public_message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


# ⭐ CORS (important for frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Can restrict later for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS --------
app.include_router(bookings.router)
app.include_router(payments.router)
app.include_router(admin.router)

@app.get("/", tags=["Root"])
def root():
    return {"message": "Backend running successfully"}
