from fastapi import APIRouter, Depends

from app.core.security import get_current_user
from app.models.user import User
from app.services.lending_service import LendingService, get_lending_service
from app.schemas.checkout import CheckoutsResponse

router = APIRouter()


@router.get("/users/me/checkouts", response_model=CheckoutsResponse)
async def get_my_checkouts(
    service: LendingService = Depends(get_lending_service),
    current_user: User = Depends(get_current_user)
):
    """List the books the current user has checked out."""
    checkouts = await service.list_active_checkouts_for_borrower(current_user.id)
    return CheckoutsResponse.from_records(checkouts)
