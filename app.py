"""Flask web application for the yard placement planner."""

import json
import logging
import os
from dataclasses import asdict

from flask import Flask, jsonify, request

from models import (
    BerthAssignment,
    BlockConfig,
    BlockType,
    Container,
    ContainerSize,
    MachineType,
    RequestStatus,
    ScheduleEntry,
    YardSettings,
)
from planner import InvalidStateError, PlanningError, UnknownRequestError, YardPlanner

app = Flask(__name__)
logger = logging.getLogger(__name__)

CONFIG_FILE = os.environ.get("YARD_CONFIG_FILE", "yard_config.json")


def _grid(name, total_bays, rows=6, tiers=5, machine="RTG"):
    return {"name": name, "total_bays": total_bays, "rows_per_bay": rows,
            "tiers_per_bay": tiers, "machine_type": machine, "block_type": "GRID"}


def _heap(name):
    return {"name": name, "total_bays": 0, "rows_per_bay": 0, "tiers_per_bay": 0,
            "machine_type": "RS", "block_type": "HEAP", "capacity": 500}


def get_default_config():
    """Default terminal layout and planning rules."""
    blocks = (
        [_grid(n, 30) for n in ("A1", "B1", "C1", "D1", "E1", "F1", "G1", "H1", "I1")]
        + [_grid(n, 35) for n in ("A2", "B2", "C2", "D2", "E2", "F2", "G2", "H2", "I2")]
        + [_grid(n, 25) for n in ("A0", "H0", "I0")]
        + [_grid("B0", 26, rows=11, machine="RS"), _grid("C0", 26, rows=10, machine="RS")]
        + [_heap(n) for n in ("APR01", "APR02", "CFS 1", "MNR")]
    )
    return {
        "blocks": blocks,
        "berth_mapping": [
            {"berth_name": "1A", "assigned_blocks": ["A0", "A1", "B1", "C1"]},
            {"berth_name": "1B", "assigned_blocks": ["A0", "A1", "B1", "C1"]},
            {"berth_name": "2", "assigned_blocks": ["A2", "B2", "C2"]},
            {"berth_name": "BARGING", "assigned_blocks": [
                "D1", "E1", "F1", "G1", "H1", "D2", "E2", "F2", "G2", "H2"]},
        ],
        "max_tier_by_block": {"A1": 5, "B1": 5, "C1": 5, "A2": 5, "B2": 5, "C2": 5,
                              "B0": 6, "C0": 6},
        "default_berth": "BARGING",
        "schedule": [],
    }


def load_config():
    """Load config from file, or return default."""
    if os.path.exists(CONFIG_FILE):
        with open(CONFIG_FILE, "r") as f:
            return json.load(f)
    return get_default_config()


def save_config(config):
    """Save config to file."""
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def config_to_blocks(config):
    blocks = []
    for bc in config.get("blocks", []):
        blocks.append(BlockConfig(
            name=bc["name"],
            total_bays=int(bc.get("total_bays", 0)),
            rows_per_bay=int(bc.get("rows_per_bay", 0)),
            tiers_per_bay=int(bc.get("tiers_per_bay", 0)),
            machine_type=MachineType(bc.get("machine_type", "RTG")),
            block_type=BlockType(bc.get("block_type", "GRID")),
            capacity=bc.get("capacity"),
            group=bc.get("group"),
        ))
    return blocks


def config_to_settings(config):
    berth_mapping = [
        BerthAssignment(berth_name=m["berth_name"], assigned_blocks=list(m.get("assigned_blocks", [])))
        for m in config.get("berth_mapping", [])
    ]
    return YardSettings(
        max_tier_by_block={k: int(v) for k, v in config.get("max_tier_by_block", {}).items()},
        berth_mapping=berth_mapping,
        default_berth=config.get("default_berth", "BARGING"),
    )


def config_to_schedule(config):
    return [
        ScheduleEntry(
            vessel_name=sc["vessel_name"],
            voyage=sc.get("voyage"),
            discharge=int(sc.get("discharge", 0)),
            load=int(sc.get("load", 0)),
            berth=sc.get("berth"),
        )
        for sc in config.get("schedule", [])
    ]


def container_from_dict(data):
    return Container(
        id=str(data["id"]),
        block=data["block"],
        bay=int(data["bay"]),
        row=int(data["row"]),
        tier=int(data["tier"]),
        size=ContainerSize.parse(data.get("size", "20")),
        weight=float(data["weight"]) if data.get("weight") is not None else None,
        vessel=data.get("vessel") or "",
        destination_port=data.get("destination_port") or "",
        location=data.get("location"),
        is_multi_bay=bool(data.get("is_multi_bay", False)),
        part_type=data.get("part_type"),
    )


def build_planner(config):
    return YardPlanner(
        blocks=config_to_blocks(config),
        settings=config_to_settings(config),
        schedule=config_to_schedule(config),
    )


planner = build_planner(load_config())


def request_to_json(req):
    data = asdict(req)
    data["state"] = planner.state(req.id).value
    suggestion = planner.suggestion(req.id)
    data["suggestion"] = suggestion_to_json(suggestion) if suggestion else None
    return data


def suggestion_to_json(suggestion):
    data = asdict(suggestion)
    data["location"] = suggestion.location
    return data


def reservation_to_json(res):
    return {
        "id": res.id,
        "location": res.slot.format(),
        "footprint": [s.format() for s in res.footprint],
        "request_id": res.request_id,
        "expiry": res.expiry.isoformat(),
        "remaining_seconds": planner.ledger.remaining_seconds(res),
    }


@app.errorhandler(PlanningError)
def handle_planning_error(exc):
    status = 400
    if isinstance(exc, UnknownRequestError):
        status = 404
    elif isinstance(exc, InvalidStateError):
        status = 409
    return jsonify({"ok": False, "message": str(exc), "errors": exc.errors}), status


# ─── Routes ──────────────────────────────────────────────────────────

@app.route("/api/config", methods=["GET"])
def get_config():
    return jsonify(load_config())


@app.route("/api/config", methods=["POST"])
def save_yard_config():
    config = request.get_json(silent=True)
    if not isinstance(config, dict):
        return jsonify({"ok": False, "message": "Config must be a JSON object"}), 400
    try:
        blocks = config_to_blocks(config)
        settings = config_to_settings(config)
        schedule = config_to_schedule(config)
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"ok": False, "message": f"Invalid config: {e}"}), 400
    save_config(config)
    logger.info("Yard config saved to %s", CONFIG_FILE)
    planner.configure(blocks, settings)
    planner.load_schedule(schedule)
    return jsonify({"ok": True})


@app.route("/api/inventory", methods=["POST"])
def upload_inventory():
    payload = request.get_json(silent=True)
    if not isinstance(payload, list):
        return jsonify({"ok": False, "message": "Inventory must be a JSON list"}), 400
    try:
        containers = [container_from_dict(item) for item in payload]
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"ok": False, "message": f"Invalid container record: {e}"}), 400
    count = planner.load_inventory(containers)
    return jsonify({"ok": True, "count": count})


@app.route("/api/requests", methods=["GET"])
def list_requests():
    status = request.args.get("status")
    try:
        wanted = RequestStatus(status) if status else None
    except ValueError:
        return jsonify({"ok": False, "message": f"Unknown status: {status}"}), 400
    return jsonify([request_to_json(r) for r in planner.requests(wanted)])


@app.route("/api/requests", methods=["POST"])
def create_request():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"ok": False, "message": "Request must be a JSON object"}), 400
    req = planner.submit(
        vessel=body.get("vessel"),
        destination_port=body.get("destination_port"),
        size=body.get("size"),
        weight=body.get("weight"),
    )
    return jsonify(request_to_json(req)), 201


@app.route("/api/requests/<request_id>/suggest", methods=["POST"])
def suggest_location(request_id):
    suggestion = planner.suggest(request_id)
    return jsonify(suggestion_to_json(suggestion))


@app.route("/api/requests/<request_id>/assign", methods=["POST"])
def assign_location(request_id):
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return jsonify({"ok": False, "message": "Assignment must be a JSON object"}), 400
    req = planner.assign(request_id, location=body.get("location"))
    return jsonify(request_to_json(req))


@app.route("/api/requests/<request_id>/release", methods=["POST"])
def release_suggestion(request_id):
    res = planner.release(request_id)
    return jsonify({"ok": True, "released": res.id if res else None})


@app.route("/api/reservations", methods=["GET"])
def list_reservations():
    return jsonify([reservation_to_json(r) for r in planner.reservations()])


@app.route("/api/status", methods=["GET"])
def get_status():
    counts = {}
    for req in planner.requests():
        state = planner.state(req.id).value
        counts[state] = counts.get(state, 0) + 1
    return jsonify({
        "requests": counts,
        "containers": len(planner.containers),
        "reservations": len(planner.reservations()),
    })


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(host="0.0.0.0", port=5000, debug=True)
