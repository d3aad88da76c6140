"""
Lead export - pushes confirmed conversations to the lead spreadsheet.

Two sinks, in order of precedence:
1. GOOGLE_SHEETS_URL: JSON POST to a Google Apps Script web app (success iff 200)
2. Google Sheets API (GOOGLE_SHEETS_ENABLED + spreadsheet id + credentials):
   one row per phone number in the "Leads" sheet, updated in place
Otherwise a stub line is logged. Export never raises into the conversation flow.
"""

import asyncio
import json
import logging
import os
from typing import Any

import httpx

from app.constants.event_types import EVENT_SHEETS_EXPORT_FAILURE
from app.core.config import Settings
from app.services.integrations.http_client import create_httpx_client
from app.services.state_store import ConversationState
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

SHEET_NAME = "Leads"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
EXPORT_TIMEOUT_SECONDS = 10.0

# Column order of the Leads sheet (column A is the phone number, used for upserts)
SHEET_COLUMNS = [
    "userPhone",
    "timestamp",
    "serviceType",
    "comuna",
    "direccion",
    "fecha",
    "link",
    "nEspacios",
    "edicion",
    "embed",
    "urgente",
    "presupuesto",
    "nombre",
    "correo",
    "factura",
    "razonSocial",
    "rut",
    "fechaAgendada",
    "priceMin",
    "priceMax",
    "confirmed",
    "mediaUrls",
]


def _get_sheets_service(settings: Settings):
    """
    Get Google Sheets API service client.

    Returns:
        Google Sheets service object, or None if not configured
    """
    if not settings.google_sheets_enabled or not settings.google_sheets_spreadsheet_id:
        return None

    try:
        from google.oauth2 import service_account
        from googleapiclient.discovery import build

        credentials_json = settings.google_sheets_credentials_json
        if not credentials_json:
            logger.warning("Google Sheets enabled but credentials_json not set")
            return None

        # Parse credentials (can be file path or JSON string)
        if os.path.exists(credentials_json):
            credentials = service_account.Credentials.from_service_account_file(
                credentials_json, scopes=SHEETS_SCOPES
            )
        else:
            try:
                creds_dict = json.loads(credentials_json)
            except json.JSONDecodeError:
                logger.error(
                    "Google Sheets credentials_json is neither a valid file path nor JSON string"
                )
                return None
            credentials = service_account.Credentials.from_service_account_info(
                creds_dict, scopes=SHEETS_SCOPES
            )

        return build("sheets", "v4", credentials=credentials)

    except ImportError:
        logger.warning(
            "Google Sheets API libraries not installed. Install with: pip install google-api-python-client google-auth"
        )
        return None
    except Exception as e:
        logger.error(f"Failed to initialize Google Sheets service: {e}")
        return None


def build_lead_payload(state: ConversationState, settings: Settings) -> dict[str, Any]:
    """JSON payload sent to the Apps Script sink."""
    return {
        "timestamp": utc_now().isoformat(),
        "userPhone": state.user_phone,
        "serviceType": state.service_type or "",
        "answers": dict(state.answers),
        "mediaUrls": list(state.media_urls),
        "pricing": state.pricing.to_payload() if state.pricing else None,
        "confirmed": state.confirmed,
        "businessInfo": {
            "name": settings.business_name,
            "phone": settings.business_phone,
            "website": settings.business_website,
        },
    }


def build_row_values(payload: dict[str, Any]) -> list[Any]:
    """Flatten a lead payload into SHEET_COLUMNS order."""
    answers = payload.get("answers") or {}
    pricing = payload.get("pricing") or {}
    row_data = {
        "userPhone": payload["userPhone"],
        "timestamp": payload["timestamp"],
        "serviceType": payload["serviceType"],
        **{key: answers.get(key, "") for key in SHEET_COLUMNS if key in answers},
        "priceMin": pricing.get("min", ""),
        "priceMax": pricing.get("max", ""),
        "confirmed": payload["confirmed"],
        "mediaUrls": ";".join(payload.get("mediaUrls") or []),
    }
    return [row_data.get(column, "") for column in SHEET_COLUMNS]


class LeadExporter:
    """Sends lead payloads to the configured sink."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        sheets_service: Any = None,
    ):
        self.settings = settings
        self._transport = transport
        self._sheets_service = sheets_service

    async def export_lead(self, state: ConversationState) -> bool:
        """
        Export one lead.

        Returns:
            True if the sink accepted it, False otherwise (never raises)
        """
        if not self.settings.feature_sheets_enabled:
            logger.debug(f"Lead export disabled (feature flag) - skipping {state.user_phone}")
            return False

        try:
            payload = build_lead_payload(state, self.settings)
            logger.info(
                f"Exporting lead: phone={state.user_phone}, service={state.service_type}, confirmed={state.confirmed}"
            )

            if self.settings.google_sheets_url:
                return await self._post_to_webhook(payload)

            service = self._sheets_service or _get_sheets_service(self.settings)
            if service:
                return await asyncio.to_thread(self._upsert_row, service, payload)

            logger.info(f"[SHEETS-STUB] Google Sheets not configured, would export lead: {payload}")
            return False

        except Exception as e:
            logger.error(
                f"Failed to export lead {state.user_phone}: {e}",
                extra={"event_type": EVENT_SHEETS_EXPORT_FAILURE},
            )
            return False

    async def _post_to_webhook(self, payload: dict[str, Any]) -> bool:
        async with create_httpx_client(timeout=EXPORT_TIMEOUT_SECONDS, transport=self._transport) as client:
            response = await client.post(self.settings.google_sheets_url, json=payload)

        if response.status_code == 200:
            logger.info(f"Lead {payload['userPhone']} sent to Google Sheets webhook")
            return True

        logger.warning(
            f"Google Sheets webhook returned non-200 status: {response.status_code}",
            extra={"event_type": EVENT_SHEETS_EXPORT_FAILURE},
        )
        return False

    def _upsert_row(self, service, payload: dict[str, Any]) -> bool:
        """Update the row whose column A matches the phone, or append a new one."""
        spreadsheet_id = self.settings.google_sheets_spreadsheet_id
        phone = payload["userPhone"]
        row_values = build_row_values(payload)

        try:
            result = (
                service.spreadsheets()
                .values()
                .get(spreadsheetId=spreadsheet_id, range=f"{SHEET_NAME}!A:A")
                .execute()
            )
            rows = result.get("values", [])
            row_index = None

            # Skip header row (row 1), search from row 2
            for i, row in enumerate(rows[1:], start=2):
                if row and str(row[0]) == str(phone):
                    row_index = i
                    break

            if row_index:
                service.spreadsheets().values().update(
                    spreadsheetId=spreadsheet_id,
                    range=f"{SHEET_NAME}!{row_index}:{row_index}",
                    valueInputOption="RAW",
                    body={"values": [row_values]},
                ).execute()
                logger.info(f"Updated lead {phone} in Google Sheets (row {row_index})")
            else:
                service.spreadsheets().values().append(
                    spreadsheetId=spreadsheet_id,
                    range=f"{SHEET_NAME}!A:A",
                    valueInputOption="RAW",
                    insertDataOption="INSERT_ROWS",
                    body={"values": [row_values]},
                ).execute()
                logger.info(f"Appended lead {phone} to Google Sheets")
            return True

        except Exception as e:
            logger.error(
                f"Google Sheets API error for lead {phone}: {e}",
                extra={"event_type": EVENT_SHEETS_EXPORT_FAILURE},
            )
            return False
