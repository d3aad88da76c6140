"""
Conversation step and service category constants - centralized to avoid circular imports.
"""

# Conversation steps (ordered as the flow normally progresses)
STEP_WELCOME = "welcome"
STEP_COLLECTING_INFO = "collecting_info"
STEP_CONFIRMING_DATA = "confirming_data"
STEP_SHOWING_PRICING = "showing_pricing"
STEP_COLLECTING_CONTACT = "collecting_contact"
STEP_SCHEDULING = "scheduling"

ALL_STEPS = (
    STEP_WELCOME,
    STEP_COLLECTING_INFO,
    STEP_CONFIRMING_DATA,
    STEP_SHOWING_PRICING,
    STEP_COLLECTING_CONTACT,
    STEP_SCHEDULING,
)

# Service categories (declaration order is also the classifier tie-break order)
SERVICE_RESTAURANTE = "Restaurante"
SERVICE_VENUE = "Venue / Eventos"
SERVICE_AIRBNB = "Airbnb / Arriendo"
SERVICE_HOTEL = "Hotel"
SERVICE_OTRO = "Otro"

SERVICE_CATEGORIES = (
    SERVICE_RESTAURANTE,
    SERVICE_VENUE,
    SERVICE_AIRBNB,
    SERVICE_HOTEL,
    SERVICE_OTRO,
)

# Option ids used by interactive prompts for each category
SERVICE_OPTION_IDS = {
    "restaurante": SERVICE_RESTAURANTE,
    "venue_eventos": SERVICE_VENUE,
    "airbnb_arriendo": SERVICE_AIRBNB,
    "hotel": SERVICE_HOTEL,
    "otro": SERVICE_OTRO,
}

# Edit levels / document types as stored in answers
EDIT_BASIC = "Básica"
EDIT_ADVANCED = "Avanzada"
DOCUMENT_BOLETA = "Boleta"
DOCUMENT_FACTURA = "Factura"
NOT_SPECIFIED = "No especificado"
