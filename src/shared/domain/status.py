"""Status classifier: what an incident means for availability at a given date."""

import logging
from dataclasses import dataclass
from datetime import date

from shared.domain.model import Incident, Status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusInfo:
    text: str
    shorthand: str
    color_token: str
    icon_token: str

    @property
    def css_class(self) -> str:
        return f"tooltip-{self.shorthand}"


DISCONTINUED = StatusInfo(
    "Arrêt de commercialisation", "arret", "var(--arret-bg)", "fa-solid fa-square-xmark"
)
SHORTAGE = StatusInfo(
    "Rupture de stock", "rupture", "var(--rupture)", "fa-solid fa-square-xmark"
)
TENSION = StatusInfo(
    "Tension d'approvisionnement", "tension", "var(--tension)", "fa-solid fa-square-minus"
)
AVAILABLE = StatusInfo(
    "Disponible", "disponible", "var(--disponible)", "fa-solid fa-square-check"
)
UNKNOWN = StatusInfo(
    "Statut inconnu", "inconnu", "var(--grisleger)", "fa-solid fa-square-question"
)

STATUS_INFO = {
    Status.DISCONTINUED: DISCONTINUED,
    Status.SHORTAGE: SHORTAGE,
    Status.TENSION: TENSION,
    Status.AVAILABLE: AVAILABLE,
}


def classify(incident: Incident, reference_date: date) -> StatusInfo:
    """
    Classify an incident at ``reference_date``. First matching rule wins:

    1. Discontinued incidents stay discontinued whatever their dates.
    2. An open incident (no end_date) covering the date is a shortage or a
       tension according to its status.
    3. No calculated end, a calculated end in the past, or an explicit
       end_date means the product is available again.
    4. Anything else is reported as unknown.
    """
    if incident.status == Status.DISCONTINUED:
        return DISCONTINUED

    if incident.is_active_at(reference_date) and incident.end_date is None:
        if incident.status == Status.SHORTAGE:
            return SHORTAGE
        if incident.status == Status.TENSION:
            return TENSION
        logger.warning(
            f"Open incident for {incident.product} with status {incident.status} "
            f"at {reference_date}, classified as unknown"
        )
        return UNKNOWN

    if (
        incident.calculated_end_date is None
        or incident.calculated_end_date < reference_date
        or incident.end_date is not None
    ):
        return AVAILABLE

    logger.warning(
        f"Unclassifiable incident for {incident.product} at {reference_date}: "
        f"start={incident.start_date} calculated_end={incident.calculated_end_date}"
    )
    return UNKNOWN


def is_active_shortage_or_tension(info: StatusInfo) -> bool:
    return info in (SHORTAGE, TENSION)
