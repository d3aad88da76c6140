import logging

from fastapi import APIRouter, Depends, Security
from fastapi.responses import Response

from app.api.auth import get_admin_auth
from app.api.dependencies import get_conversation_deps, get_lead_or_404, get_state_store
from app.constants.event_types import EVENT_LEAD_CONFIRMED
from app.schemas.admin import LeadActionResponse, LeadDetailResponse, LeadListResponse
from app.services.conversation import ConversationDeps
from app.services.leads import export_leads_csv, format_lead_summary, get_lead_stats
from app.services.state_store import ConversationState, ConversationStateStore
from app.utils.datetime_utils import local_today

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/leads", response_model=LeadListResponse)
def list_leads(
    store: ConversationStateStore = Depends(get_state_store),
    _auth: bool = Security(get_admin_auth),
):
    """All conversations (oldest first) with aggregate stats."""
    leads = store.all_leads()
    return LeadListResponse(
        stats=get_lead_stats(leads),
        leads=[lead.to_dict() for lead in leads],
    )


# Declared before /leads/{phone} so "export" is not taken for a phone number
@router.get("/leads/export/csv")
def export_leads(
    store: ConversationStateStore = Depends(get_state_store),
    deps: ConversationDeps = Depends(get_conversation_deps),
    _auth: bool = Security(get_admin_auth),
):
    """Download every lead as CSV."""
    content = export_leads_csv(store.all_leads())
    filename = f"leads-{local_today(deps.settings.timezone).isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/leads/{phone}", response_model=LeadDetailResponse)
def get_lead(
    lead: ConversationState = Depends(get_lead_or_404),
    _auth: bool = Security(get_admin_auth),
):
    return LeadDetailResponse(lead=lead.to_dict(), summary=format_lead_summary(lead))


@router.post("/leads/{phone}/confirm", response_model=LeadActionResponse)
async def confirm_lead(
    lead: ConversationState = Depends(get_lead_or_404),
    deps: ConversationDeps = Depends(get_conversation_deps),
    _auth: bool = Security(get_admin_auth),
):
    """
    Confirm a lead by hand: mark confirmed, export it and notify the user.

    The notification is best effort; a send failure is logged and reported
    in the response message.
    """
    phone = lead.user_phone
    deps.store.confirm(phone)
    logger.info(f"Lead {phone} confirmed by admin", extra={"event_type": EVENT_LEAD_CONFIRMED})

    exported = await deps.exporter.export_lead(lead)

    try:
        await deps.say(phone, "admin_confirmed")
    except Exception as e:
        logger.error(f"Failed to notify {phone} of admin confirmation: {e}")
        return LeadActionResponse(
            success=True,
            message="Lead confirmed; user notification failed",
            exported=exported,
        )

    return LeadActionResponse(success=True, message="Lead confirmed", exported=exported)


@router.delete("/leads/{phone}", response_model=LeadActionResponse)
def delete_lead(
    lead: ConversationState = Depends(get_lead_or_404),
    store: ConversationStateStore = Depends(get_state_store),
    _auth: bool = Security(get_admin_auth),
):
    store.delete(lead.user_phone)
    logger.info(f"Lead {lead.user_phone} deleted by admin")
    return LeadActionResponse(success=True, message="Lead deleted")
