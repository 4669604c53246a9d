from fastapi import APIRouter, Depends
from ..deps import auth_dep, get_store
from ..errors import NotFound
from ..schemas import SettingIn, SettingOut
from ..services.store import SqlStore

router = APIRouter(prefix="/settings", tags=["settings"], dependencies=[Depends(auth_dep)])


@router.get("/{key}", response_model=SettingOut)
async def get_setting(key: str, store: SqlStore = Depends(get_store)):
    row = await store.get_setting(key)
    if row is None:
        raise NotFound(f"Setting {key} not found")
    return row


@router.put("/{key}", response_model=SettingOut)
async def put_setting(key: str, req: SettingIn, store: SqlStore = Depends(get_store)):
    return await store.set_setting(key, req.value, req.description)
