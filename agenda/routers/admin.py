from typing import Optional

from fastapi import APIRouter, Depends

from agenda.deps import get_identity, get_store
from agenda.schemas import AdminStats, Identity
from agenda.services.admin_stats import admin_statistics
from agenda.store import RecordStore

router = APIRouter()


@router.get("/stats", response_model=AdminStats)
def stats(identity: Optional[Identity] = Depends(get_identity), store: RecordStore = Depends(get_store)):
    return admin_statistics(store, identity)
