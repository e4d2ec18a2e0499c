"""Planning session: gate requests, suggestions and commits.

A request moves PENDING -> SUGGESTED (reservation held) -> ASSIGNED. If the
reservation times out before the commit the request reads as PENDING again
and needs a fresh suggestion. A search that finds nothing leaves it
NOT_FOUND until the next attempt.
"""

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from matching import normalize
from models import (
    BlockConfig,
    Container,
    ContainerSize,
    PlacementRequest,
    RequestState,
    RequestStatus,
    Reservation,
    ScheduleEntry,
    SlotKey,
    Suggestion,
    YardContext,
    YardSettings,
)
from occupancy import OccupancyIndex
from placement import find_optimal_location
from reservations import ReservationLedger
from safety import is_safe
from validation import validate_location, validate_positive_float, validate_required, validate_size

logger = logging.getLogger(__name__)


class PlanningError(ValueError):
    """A request could not be processed as asked."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class UnknownRequestError(PlanningError):
    pass


class InvalidStateError(PlanningError):
    pass


class YardPlanner:
    """Holds the yard snapshot, open requests and the reservation ledger."""

    def __init__(
        self,
        blocks: Iterable[BlockConfig],
        settings: YardSettings,
        schedule: Iterable[ScheduleEntry] = (),
        containers: Iterable[Container] = (),
        ledger: Optional[ReservationLedger] = None,
    ):
        self.blocks: List[BlockConfig] = list(blocks)
        self.settings = settings
        self.schedule: List[ScheduleEntry] = list(schedule)
        self.containers: List[Container] = list(containers)
        self.ledger = ledger or ReservationLedger()
        self._requests: Dict[str, PlacementRequest] = {}
        self._suggestions: Dict[str, Suggestion] = {}
        self._lock = threading.Lock()

    # ─── Snapshot loading ───────────────────────────────────────────

    def load_inventory(self, containers: Iterable[Container]) -> int:
        """Replace the inventory wholesale (e.g. after a spreadsheet upload)."""
        with self._lock:
            self.containers = list(containers)
            count = len(self.containers)
        logger.info("Inventory reloaded: %d record(s)", count)
        return count

    def load_schedule(self, entries: Iterable[ScheduleEntry]) -> None:
        with self._lock:
            self.schedule = list(entries)

    def configure(self, blocks: Iterable[BlockConfig], settings: YardSettings) -> None:
        with self._lock:
            self.blocks = list(blocks)
            self.settings = settings

    def context(self) -> YardContext:
        """Copy of the current yard state for one search."""
        return YardContext(
            containers=list(self.containers),
            requests=[replace(r) for r in self._requests.values()],
            blocks=list(self.blocks),
            schedule=list(self.schedule),
        )

    # ─── Request lifecycle ──────────────────────────────────────────

    def submit(self, vessel: str, destination_port: str, size, weight,
               now: Optional[datetime] = None) -> PlacementRequest:
        """Register a gate declaration as a pending request."""
        errors: Dict[str, str] = {}
        validate_required(vessel, "vessel", errors)
        validate_required(destination_port, "destination_port", errors)
        validate_size(size, "size", errors)
        validate_positive_float(weight, "weight", errors)
        if errors:
            raise PlanningError("Invalid placement request.", errors)

        request = PlacementRequest(
            id=f"REQ-{uuid.uuid4().hex[:10].upper()}",
            vessel=normalize(vessel),
            destination_port=normalize(destination_port),
            size=ContainerSize.parse(size),
            weight=float(weight),
            timestamp=now or self.ledger.now(),
        )
        with self._lock:
            self._requests[request.id] = request
        logger.info("Request %s submitted: %s/%s %sft %.1ft", request.id, request.vessel,
                    request.destination_port, request.size.value, request.weight)
        return request

    def get(self, request_id: str) -> PlacementRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise UnknownRequestError(f"Unknown request: {request_id}")
        return request

    def suggest(self, request_id: str, now: Optional[datetime] = None) -> Suggestion:
        now = now or self.ledger.now()
        with self._lock:
            request = self.get(request_id)
            if request.status == RequestStatus.ASSIGNED:
                raise InvalidStateError(f"Request {request_id} is already assigned.")
            self._drop_reservation(request)

            suggestion = find_optimal_location(request, self.context(), self.settings,
                                               self.ledger, now)
            request.reservation_id = suggestion.reservation_id
            self._suggestions[request_id] = suggestion
        return suggestion

    def assign(self, request_id: str, location: Optional[str] = None,
               now: Optional[datetime] = None) -> PlacementRequest:
        """Commit a request to its suggested slot, or to an explicit location."""
        now = now or self.ledger.now()
        with self._lock:
            request = self.get(request_id)
            if request.status == RequestStatus.ASSIGNED:
                raise InvalidStateError(f"Request {request_id} is already assigned.")

            if location is None:
                if self.state(request_id, now) != RequestState.SUGGESTED:
                    raise InvalidStateError(
                        f"Request {request_id} holds no live suggestion; suggest again.")
                location = self._suggestions[request_id].location
            else:
                errors: Dict[str, str] = {}
                validate_location(location, "location", errors)
                if errors:
                    raise PlanningError("Invalid location.", errors)

            slot = SlotKey.parse(location)
            index = OccupancyIndex.build(self.containers, self._requests.values())
            with self.ledger.lock:
                # The request's own hold does not block its commit, and is kept on rejection.
                if not is_safe(slot.block, slot.bay, slot.row, slot.tier, request,
                               index, self.ledger, now, owner=request.id):
                    raise PlanningError(f"Location {location} is not safe for {request_id}.",
                                        {"location": "Slot is occupied, reserved or unstable."})
                self._drop_reservation(request)

            request.status = RequestStatus.ASSIGNED
            request.assigned_location = slot.format()
            self._suggestions.pop(request_id, None)
        logger.info("Request %s assigned to %s", request_id, request.assigned_location)
        return request

    def release(self, request_id: str) -> Optional[Reservation]:
        """Give up a held suggestion without committing it."""
        with self._lock:
            request = self.get(request_id)
            res = self._drop_reservation(request)
            self._suggestions.pop(request_id, None)
        return res

    def _drop_reservation(self, request: PlacementRequest) -> Optional[Reservation]:
        res = None
        if request.reservation_id:
            res = self.ledger.release(request.reservation_id)
            request.reservation_id = None
        return res

    # ─── Queries ────────────────────────────────────────────────────

    def state(self, request_id: str, now: Optional[datetime] = None) -> RequestState:
        now = now or self.ledger.now()
        request = self.get(request_id)
        if request.status == RequestStatus.ASSIGNED:
            return RequestState.ASSIGNED
        suggestion = self._suggestions.get(request_id)
        if suggestion is None:
            return RequestState.PENDING
        if suggestion.not_found:
            return RequestState.NOT_FOUND
        if suggestion.reservation_id and self.ledger.get(suggestion.reservation_id, now):
            return RequestState.SUGGESTED
        return RequestState.PENDING

    def suggestion(self, request_id: str) -> Optional[Suggestion]:
        return self._suggestions.get(request_id)

    def requests(self, status: Optional[RequestStatus] = None) -> List[PlacementRequest]:
        items = list(self._requests.values())
        if status is not None:
            items = [r for r in items if r.status == status]
        return items

    def reservations(self, now: Optional[datetime] = None) -> List[Reservation]:
        now = now or self.ledger.now()
        self.ledger.sweep(now)
        return self.ledger.active(now)
