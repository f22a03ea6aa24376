from fastapi import APIRouter
from app.api.v1.endpoints import quotes, availability_slots, appointments, payment_proofs

api_router = APIRouter()
api_router.include_router(quotes.router, prefix="/quotes", tags=["quotes"])
api_router.include_router(availability_slots.router, prefix="/availability-slots", tags=["availability"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(payment_proofs.router, prefix="/payment-proofs", tags=["payment-proofs"])
