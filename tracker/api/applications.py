from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from tracker.api.deps import get_record_store, get_session, require_user
from tracker.models.store import User
from tracker.schemas.application import (
    ApplicationCreatedResponse,
    ApplicationListResponse,
    ApplicationRequest,
    ApplicationResponse,
)
from tracker.services.dashboard import DashboardController, Draft
from tracker.services.record_store import RecordStoreAdapter
from tracker.services.session import Session
from tracker.services.view_state import ALL, SortOption

router = APIRouter(prefix="/applications", tags=["applications"])


def build_view(session: Session, store: RecordStoreAdapter, status_filter: str, q: str, sort: SortOption):
    dashboard = DashboardController(session, store)
    try:
        dashboard.set_status_filter(status_filter)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Unknown status filter: {status_filter}"
        ) from exc
    dashboard.set_search(q)
    dashboard.set_sort(sort)
    dashboard.mount()
    try:
        if dashboard.error:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=dashboard.error)
        view = dashboard.view
    finally:
        dashboard.unmount()
    return ApplicationListResponse(
        items=[ApplicationResponse(**record.__dict__) for record in view.items],
        counts=view.counts,
        total=view.total,
        status_filter=status_filter,
        search=q,
        sort=dashboard.sort,
    )


@router.get("", response_model=ApplicationListResponse)
def list_applications(
    status_filter: str = Query(ALL, alias="status"),
    q: str = "",
    sort: SortOption = SortOption.NEWEST,
    user: User = Depends(require_user),
    session: Session = Depends(get_session),
    store: RecordStoreAdapter = Depends(get_record_store),
):
    return build_view(session, store, status_filter, q, sort)


@router.post("", response_model=ApplicationCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_application(
    payload: ApplicationRequest,
    user: User = Depends(require_user),
    store: RecordStoreAdapter = Depends(get_record_store),
):
    fields = Draft(**payload.model_dump()).to_fields()
    record_id = store.create(user.id, fields)
    return ApplicationCreatedResponse(id=record_id)


@router.put("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_application(
    record_id: str,
    payload: ApplicationRequest,
    user: User = Depends(require_user),
    store: RecordStoreAdapter = Depends(get_record_store),
):
    fields = Draft(**payload.model_dump()).to_fields()
    store.update(user.id, record_id, fields)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_application(
    record_id: str,
    user: User = Depends(require_user),
    store: RecordStoreAdapter = Depends(get_record_store),
):
    store.delete(user.id, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
