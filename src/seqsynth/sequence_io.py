from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from seqsynth.sequence import Note, Sequence, Velocity
from seqsynth.time_model import Force, TimeSpan


def _span_from_item(item: dict[str, Any], where: str) -> TimeSpan:
    if "start_s" not in item:
        raise ValueError(f"{where} is missing start_s.")
    if "end_s" in item:
        return TimeSpan.between(float(item["start_s"]), float(item["end_s"]))
    if "duration_s" in item:
        return TimeSpan.starting_at(float(item["start_s"]), float(item["duration_s"]))
    raise ValueError(f"{where} needs end_s or duration_s.")


def _optional_force(value: Any) -> Force | None:
    return None if value is None else Force(float(value))


def _note_from_item(item: Any, idx: int) -> Note:
    where = f"Notes JSON item {idx}"
    if not isinstance(item, dict):
        raise ValueError(f"{where} must be an object.")
    if "frequency_id" not in item:
        raise ValueError(f"{where} is missing frequency_id.")
    return Note(
        t_span=_span_from_item(item, where),
        frequency_id=int(item["frequency_id"]),
        instrument_id=int(item.get("instrument_id", 0)),
        velocity=Velocity(
            on=_optional_force(item.get("velocity_on")),
            off=_optional_force(item.get("velocity_off")),
        ),
    )


def load_sequence_json(path: str | Path) -> Sequence:
    """Load a sequence from JSON.

    The root is either a list of note objects or an object with ``notes`` and
    an optional ``loop_info`` list of ``{start_s, end_s}`` spans.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, list):
        raw = {"notes": raw}
    if not isinstance(raw, dict) or not isinstance(raw.get("notes"), list):
        raise ValueError("Sequence JSON must be a list of notes or an object with a notes list.")

    sequence = Sequence()
    for idx, item in enumerate(raw["notes"]):
        sequence.add_note(_note_from_item(item, idx))
    for idx, item in enumerate(raw.get("loop_info", [])):
        if not isinstance(item, dict):
            raise ValueError(f"loop_info item {idx} must be an object.")
        sequence.loop_info.append(_span_from_item(item, f"loop_info item {idx}"))
    sequence.sort_by_time()
    return sequence


def save_sequence_json(path: str | Path, sequence: Sequence) -> Path:
    notes = []
    for note in sequence.notes:
        entry: dict[str, Any] = {
            "start_s": note.t_span.start_at.value,
            "end_s": note.t_span.end_at.value,
            "frequency_id": note.frequency_id,
            "instrument_id": note.instrument_id,
        }
        if note.velocity.on is not None:
            entry["velocity_on"] = note.velocity.on.value
        if note.velocity.off is not None:
            entry["velocity_off"] = note.velocity.off.value
        notes.append(entry)
    payload = {
        "notes": notes,
        "loop_info": [{"start_s": s.start_at.value, "end_s": s.end_at.value} for s in sequence.loop_info],
    }
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return output
