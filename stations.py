# stations.py
import logging

import database as db
from errors import NotFoundError, SimulatorValidationError

logger = logging.getLogger(__name__)


def _public(station):
    return {
        "id": station["id"],
        "name": station["name"],
        "address": station["address"],
        "latitude": station["latitude"],
        "longitude": station["longitude"],
        "slots": station["slots"] or [],
    }


def _check_slots(station_id, slots):
    if not isinstance(slots, list):
        raise SimulatorValidationError(f"slots for station {station_id} must be a list.")
    for slot in slots:
        if not isinstance(slot, dict) or not isinstance(slot.get("isAvailable"), bool):
            raise SimulatorValidationError(f"Every slot of station {station_id} needs a boolean isAvailable.")
    return slots


def list_stations(engine):
    return {"stations": [_public(s) for s in db.list_stations(engine)]}


def update_slot(engine, station_id, slot_index, is_available):
    if slot_index is None or is_available is None:
        raise SimulatorValidationError("slotIndex and isAvailable are required.")
    station = db.get_station(engine, station_id)
    if station is None:
        raise NotFoundError(f"Station {station_id} not found.")

    slots = list(station["slots"] or [])
    if not 0 <= slot_index < len(slots):
        raise SimulatorValidationError(f"Slot index {slot_index} is out of range for station {station_id}.")

    slots[slot_index] = {**slots[slot_index], "isAvailable": is_available}
    db.set_station_slots(engine, station_id, slots)
    logger.info(f"🔌 {station_id} slot {slot_index} -> {'available' if is_available else 'busy'}")
    return {"message": f"Slot {slot_index} of station {station_id} updated.", "station": {**_public(station), "slots": slots}}


def bulk_update_slots(engine, updates):
    """Validate every update first, then write them all in one transaction."""
    if not updates:
        raise SimulatorValidationError("updates must be a non-empty list.")

    known = {s["id"] for s in db.list_stations(engine)}
    batch = []
    for item in updates:
        station_id = item.get("id")
        if station_id not in known:
            raise NotFoundError(f"Station {station_id} not found.")
        batch.append((station_id, _check_slots(station_id, item.get("slots"))))

    db.bulk_set_station_slots(engine, batch)
    logger.info(f"🔌 Bulk slot update applied to {len(batch)} stations")
    return {"message": f"Updated {len(batch)} stations."}
