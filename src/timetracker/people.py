"""Client for the external people lookup service.

New users only supply a passport number; surname, name, patronymic and
address come from this service.
"""

import logging

import httpx

from timetracker.errors import PeopleLookupError, ValidationError
from timetracker.models import People

logger = logging.getLogger(__name__)


def split_passport(passport_number: str) -> tuple[str, str]:
    """Split "1234 567890" into serie and number.

    Raises:
        ValidationError: If the value is not two space-separated parts.
    """
    parts = passport_number.split(" ")
    if len(parts) != 2 or not all(parts):
        raise ValidationError("invalid passport number format")
    return parts[0], parts[1]


class PeopleClient:
    """Looks up personal details by passport number."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Full URL of the lookup endpoint.
            timeout: Request timeout in seconds.
            transport: Optional transport, used by tests to stub the service.
        """
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def get_by_passport(self, passport_number: str) -> People:
        """Fetch details for a passport number.

        Args:
            passport_number: Serie and number separated by a space.

        Returns:
            Details reported by the service.

        Raises:
            ValidationError: If the passport number is malformed.
            PeopleLookupError: On transport failure, non-200 status or bad payload.
        """
        serie, number = split_passport(passport_number)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.base_url,
                    params={"passportSerie": serie, "passportNumber": number},
                )
        except httpx.RequestError as e:
            logger.error(f"People lookup for serie {serie} failed: {e}")
            raise PeopleLookupError(f"Connection error: {e}") from e

        if response.status_code != 200:
            logger.error(f"People lookup returned HTTP {response.status_code}: {response.text[:200]}")
            raise PeopleLookupError(
                f"people lookup returned not OK status: {response.status_code}"
            )

        try:
            return People.model_validate(response.json())
        except ValueError as e:
            logger.error(f"People lookup returned an unreadable payload: {e}")
            raise PeopleLookupError("error decoding people lookup response") from e
