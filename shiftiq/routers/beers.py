from typing import List, Optional
from fastapi import APIRouter, Depends
from ..deps import auth_dep, get_store
from ..errors import NotFound
from ..schemas import BeerCreate, BeerOut
from ..services.store import SqlStore

router = APIRouter(prefix="/beers", tags=["beers"], dependencies=[Depends(auth_dep)])


@router.get("", response_model=List[BeerOut])
async def list_beers(style: Optional[str] = None, store: SqlStore = Depends(get_store)):
    return await store.list_beers(style)


@router.get("/search", response_model=List[BeerOut])
async def search_beers(q: str, store: SqlStore = Depends(get_store)):
    return await store.search_beers(q)


@router.post("", response_model=BeerOut, status_code=201)
async def create_beer(req: BeerCreate, store: SqlStore = Depends(get_store)):
    return await store.create_beer(**req.model_dump())


@router.delete("/{beer_id}", status_code=204)
async def delete_beer(beer_id: str, store: SqlStore = Depends(get_store)):
    if not await store.delete_beer(beer_id):
        raise NotFound("Beer not found")
