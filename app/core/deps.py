"""FastAPI dependencies: context, session, authentication and service wiring."""

from typing import AsyncIterator, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import AppContext
from app.models.user import User, UserRole
from app.services.appointments import AppointmentService, CachedAppointmentService
from app.services.auth import decode_access_token
from app.services.availability import AvailabilitySlotService, CachedAvailabilitySlotService
from app.services.payment_proofs import CachedPaymentProofService, PaymentProofService
from app.services.quotes import CachedQuoteService, QuoteService

security = HTTPBearer()


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_db(context: AppContext = Depends(get_context)) -> AsyncIterator[AsyncSession]:
    """One session per request, closed when the response is sent."""
    async with context.database.session_factory() as session:
        yield session


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the current user from JWT token.

    Raises 401 if the token is invalid or names an unknown user.
    """
    payload = decode_access_token(
        credentials.credentials,
        context.settings.JWT_SECRET_KEY,
        context.settings.JWT_ALGORITHM,
    )
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: Optional[str] = payload.get("sub")
    try:
        user = await db.get(User, UUID(user_id)) if user_id else None
    except ValueError:
        user = None

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def get_quote_service(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> CachedQuoteService:
    return CachedQuoteService(QuoteService(db, context.file_store, context.notifier), context.service_cache())


def get_availability_service(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> CachedAvailabilitySlotService:
    return CachedAvailabilitySlotService(AvailabilitySlotService(db), context.service_cache())


def get_appointment_service(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> CachedAppointmentService:
    return CachedAppointmentService(AppointmentService(db), context.service_cache())


def get_payment_proof_service(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> CachedPaymentProofService:
    return CachedPaymentProofService(PaymentProofService(db, context.file_store), context.service_cache())
