from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from tracker.api.applications import build_view
from tracker.api.deps import get_record_store, get_session
from tracker.schemas.application import ApplicationListResponse
from tracker.services.gate import AccessGate
from tracker.services.record_store import RecordStoreAdapter
from tracker.services.session import Session
from tracker.services.view_state import ALL, SortOption

router = APIRouter(tags=["dashboard"])


@router.get("/", response_model=ApplicationListResponse)
def dashboard(
    status_filter: str = Query(ALL, alias="status"),
    q: str = "",
    sort: SortOption = SortOption.NEWEST,
    session: Session = Depends(get_session),
    store: RecordStoreAdapter = Depends(get_record_store),
):
    gate = AccessGate(session)
    decision = gate.decision()
    gate.close()
    if decision.redirect_to:
        return RedirectResponse(decision.redirect_to, status_code=status.HTTP_303_SEE_OTHER)
    return build_view(session, store, status_filter, q, sort)
