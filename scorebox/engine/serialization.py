"""
JSON codec for match snapshots. The storage layer keeps the dumped text verbatim.
"""
from typing import Any, Dict, Union

from pydantic import TypeAdapter

from scorebox.engine.state import Delivery, MatchState

_match_adapter = TypeAdapter(MatchState)
_delivery_adapter = TypeAdapter(Delivery)


def dump_match(state: MatchState) -> str:
    return _match_adapter.dump_json(state).decode("utf-8")


def match_to_dict(state: MatchState) -> Dict[str, Any]:
    return _match_adapter.dump_python(state, mode="json")


def load_match(raw: Union[str, bytes, Dict[str, Any]]) -> MatchState:
    if isinstance(raw, dict):
        return _match_adapter.validate_python(raw)
    return _match_adapter.validate_json(raw)


def delivery_from_dict(data: Dict[str, Any]) -> Delivery:
    return _delivery_adapter.validate_python(data)
