"""
Client-side flat directory: flat code → flat id.

Loads the directory from the gateway once per session. When the gateway is
unreachable it keeps serving the last directory it fetched, and with nothing
fetched yet it falls back to the synthetic directory built from the configured
layout (same seed order as the backend, so ids line up with a freshly seeded store).
"""

from typing import Optional

from society_vms.config import settings
from society_vms.utils.exceptions import ServerError, TransportError, ValidationError
from society_vms.utils.validators import iter_flat_layout, normalize_flat_code
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)


def synthetic_directory(wings=None, floors: Optional[int] = None,
                        units_per_floor: Optional[int] = None) -> dict[str, int]:
    layout = iter_flat_layout(
        wings or settings.WING_LIST,
        floors or settings.FLAT_FLOORS,
        units_per_floor or settings.FLAT_UNITS_PER_FLOOR,
    )
    return {f"{wing}{number}": flat_id for flat_id, (wing, number) in enumerate(layout, start=1)}


class FlatDirectory:
    def __init__(self, gateway):
        self._gateway = gateway
        self._flats: dict[str, int] = {}
        self.using_fallback = False

    async def load(self) -> dict[str, int]:
        try:
            flats = await self._gateway.list_flats()
        except (TransportError, ServerError) as e:
            if not self._flats:
                self._flats = synthetic_directory()
                self.using_fallback = True
                logger.warning(f"Flat directory unreachable ({e.message}) — using synthetic directory")
            else:
                logger.warning(f"Flat directory unreachable ({e.message}) — keeping cached directory")
            return self._flats

        self._flats = {f.flat_code: f.id for f in flats}
        self.using_fallback = False
        logger.info(f"Flat directory loaded: {len(self._flats)} flats")
        return self._flats

    async def resolve(self, flat_code: str) -> int:
        code = normalize_flat_code(flat_code)
        if not self._flats or self.using_fallback:
            await self.load()
        flat_id = self._flats.get(code)
        if flat_id is None:
            raise ValidationError("Invalid flat code")
        return flat_id
