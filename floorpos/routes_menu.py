from fastapi import APIRouter, Depends

from .auth import ADMIN, KITCHEN, WAITER, User, role_required
from .deps import Services, get_services
from .schemas import MenuItemOut
from .utils.responses import ok

router = APIRouter(prefix="/menu", tags=["Menu"])


@router.get("")
async def list_menu(
    category: str | None = None,
    user: User = Depends(role_required(ADMIN, WAITER, KITCHEN)),
    svc: Services = Depends(get_services),
) -> dict:
    with svc.uow() as uow:
        items = uow.menu.list(category)
        return ok([MenuItemOut.model_validate(i) for i in items])
