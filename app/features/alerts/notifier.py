"""
Delivery of expiration notices.

Only the payload is produced here; actual email delivery is a separate
integration that implements `Notifier`.
"""
import abc
from datetime import date

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.utils import get_logger

log = get_logger(__name__)


class ExpirationNotice(BaseModel):
    """Serialized with camelCase keys (licenseId, providerEmail, ...)."""
    license_id: str
    license_number: str
    license_type: str
    expiration_date: date
    days_until_expiration: int
    provider_email: str | None = None
    provider_name: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Notifier(abc.ABC):
    @abc.abstractmethod
    async def send(self, notices: list[ExpirationNotice]) -> None: ...


class LoggingNotifier(Notifier):
    async def send(self, notices: list[ExpirationNotice]) -> None:
        for notice in notices:
            log.info(
                "Notification: license %s expires in %d days (provider %s)",
                notice.license_number,
                notice.days_until_expiration,
                notice.provider_email,
            )


def get_notifier() -> Notifier:
    return LoggingNotifier()
