"""
Mission assignment notifications. Delivery is log-based; every militar
assigned to an order that becomes ready for execution gets one message.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from guardiao.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MissionNotification:
    militar_email: Optional[str]
    militar_name: str
    mission_title: str
    mission_date: str
    mission_location: str
    omis_number: str
    commander_name: Optional[str] = None

    @property
    def subject(self) -> str:
        return f"Escala de Missão: {self.mission_title} - OMIS #{self.omis_number}"

    @property
    def body(self) -> str:
        return (
            f"Olá, {self.militar_name}.\n\n"
            "Você foi escalado para a seguinte missão:\n\n"
            f"Missão: {self.mission_title}\n"
            f"Data: {self.mission_date}\n"
            f"Local: {self.mission_location}\n"
            f"OMIS: {self.omis_number}\n\n"
            f"Orientação: Favor procurar o Comandante da Missão ({self.commander_name or 'Não designado'}) "
            "ou a SAP-01 para mais informações.\n\n"
            "Atenciosamente,\nSistema Guardião GSD-SP"
        )


class NotificationService:
    def send_mission_assignment(self, notification: MissionNotification) -> bool:
        """Send the assignment e-mail. Returns False when the militar has no e-mail or notifications are off."""
        if not settings.notifications_enabled:
            return False
        if not notification.militar_email:
            logger.warning(f"Notification skipped: militar {notification.militar_name} has no e-mail")
            return False
        logger.info(
            f"Sending mission notification to {notification.militar_email}: {notification.subject}"
        )
        logger.debug(notification.body)
        return True
