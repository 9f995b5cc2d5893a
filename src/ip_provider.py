"""
In-memory IP allocator holding the network reservations of instances.
"""

import logging
import threading
from typing import Dict, Set

from errors import ReservationError
from models import NetworkReservation

logger = logging.getLogger(__name__)


class IpProvider:
    """Tracks which IPs are taken on each network. Safe to share across threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._allocated: Dict[str, Set[str]] = {}

    def reserve(self, reservation: NetworkReservation) -> None:
        """
        Take the reservation's IP on its network.

        Raises:
            ReservationError: If the IP is already taken
        """
        with self._lock:
            taken = self._allocated.setdefault(reservation.network_name, set())
            if reservation.ip in taken:
                raise ReservationError(
                    f"IP {reservation.ip} already reserved on network '{reservation.network_name}'"
                )
            taken.add(reservation.ip)
            reservation.mark_reserved()
        logger.debug(f"Reserved {reservation.ip} on network '{reservation.network_name}'")

    def release(self, reservation: NetworkReservation) -> None:
        """
        Return the reservation's IP to the pool.

        Raises:
            ReservationError: If the reservation is not currently held
        """
        with self._lock:
            taken = self._allocated.get(reservation.network_name, set())
            if not reservation.reserved or reservation.ip not in taken:
                raise ReservationError(
                    f"IP {reservation.ip} is not reserved on network '{reservation.network_name}'"
                )
            taken.discard(reservation.ip)
            reservation.reserved = False
        logger.info(f"Released {reservation.ip} on network '{reservation.network_name}'")

    def is_reserved(self, network_name: str, ip: str) -> bool:
        with self._lock:
            return ip in self._allocated.get(network_name, set())
