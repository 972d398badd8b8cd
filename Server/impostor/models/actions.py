"""
Inbound Action Models

One frozen dataclass per action accepted at the socket boundary.
``parse_action`` validates the raw payload and builds the matching
variant, so the room service only ever sees well-formed input.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..config import game_settings as rules
from ..errors import (
    ValidationError, INVALID_CODE, INVALID_PAYLOAD, INVALID_SETTINGS,
    NAME_REQUIRED, NAME_TOO_LONG
)
from .directory import RoomFilter


@dataclass(frozen=True)
class CreateRoom:
    display_name: str
    settings: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JoinRoom:
    code: str
    display_name: str


@dataclass(frozen=True)
class Rejoin:
    code: str
    display_name: str


@dataclass(frozen=True)
class SetReady:
    code: str
    ready: bool


@dataclass(frozen=True)
class UpdateSettings:
    code: str
    patch: Dict[str, Any]


@dataclass(frozen=True)
class StartGame:
    code: str


@dataclass(frozen=True)
class ForceNextTurn:
    code: str


@dataclass(frozen=True)
class ForceRestart:
    code: str


@dataclass(frozen=True)
class CloseRoom:
    code: str


@dataclass(frozen=True)
class LeaveRoom:
    code: str


@dataclass(frozen=True)
class SubmitHint:
    code: str
    text: str


@dataclass(frozen=True)
class CastVote:
    code: str
    target: str


@dataclass(frozen=True)
class SendChat:
    code: str
    text: str


@dataclass(frozen=True)
class ListRooms:
    filter: RoomFilter


@dataclass(frozen=True)
class WatchRooms:
    filter: RoomFilter


@dataclass(frozen=True)
class UnwatchRooms:
    pass


def normalize_code(raw: Any) -> str:
    """Upper-case and validate a room code."""
    if not isinstance(raw, str):
        raise ValidationError(INVALID_CODE)
    code = raw.strip().upper()
    if len(code) != rules.CODE_LENGTH or any(ch not in rules.CODE_ALPHABET for ch in code):
        raise ValidationError(INVALID_CODE)
    return code


def normalize_name(raw: Any) -> str:
    """Trim a display name and enforce its length bounds."""
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(NAME_REQUIRED)
    name = " ".join(raw.split())
    if len(name) > rules.MAX_NAME_LENGTH:
        raise ValidationError(NAME_TOO_LONG)
    return name


def _int_between(low: int, high: int) -> Callable[[Any], int]:
    def check(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(INVALID_SETTINGS, "expected an integer")
        if not low <= value <= high:
            raise ValidationError(INVALID_SETTINGS, f"expected {low}-{high}")
        return value
    return check


def _region(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(INVALID_SETTINGS, "region required")
    region = value.strip().lower()
    if len(region) > rules.MAX_REGION_LENGTH or region == rules.ANY_REGION:
        raise ValidationError(INVALID_SETTINGS, "invalid region")
    return region


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(INVALID_SETTINGS, "expected a boolean")
    return value


# Payload key -> (settings attribute, validator)
SETTINGS_FIELDS = {
    'impostors': ('impostors', _int_between(rules.MIN_IMPOSTORS, rules.MAX_IMPOSTORS)),
    'impostorCount': ('impostors', _int_between(rules.MIN_IMPOSTORS, rules.MAX_IMPOSTORS)),
    'hintSeconds': ('hint_seconds', _int_between(rules.MIN_HINT_SECONDS, rules.MAX_HINT_SECONDS)),
    'voteSeconds': ('vote_seconds', _int_between(rules.MIN_VOTE_SECONDS, rules.MAX_VOTE_SECONDS)),
    'maxPlayers': ('max_players', _int_between(rules.MIN_PLAYERS, rules.MAX_PLAYERS_LIMIT)),
    'region': ('region', _region),
    'isPublic': ('is_public', _flag),
}


def parse_settings_patch(patch: Any, allow_unknown: bool = False) -> Dict[str, Any]:
    """
    Validate a settings patch.

    Args:
        patch: Raw camelCase mapping from the client
        allow_unknown: Ignore keys that are not settings (create-room payloads
            carry the display name next to the settings)

    Returns:
        Dict of Settings attribute name -> validated value

    Raises:
        ValidationError: On unknown keys or out-of-range values
    """
    if not isinstance(patch, dict):
        raise ValidationError(INVALID_SETTINGS)
    parsed = {}
    for key, value in patch.items():
        if key not in SETTINGS_FIELDS:
            if allow_unknown:
                continue
            raise ValidationError(INVALID_SETTINGS, f"unknown setting '{key}'")
        if value is None and allow_unknown:
            continue
        attribute, validator = SETTINGS_FIELDS[key]
        parsed[attribute] = validator(value)
    return parsed


def _text(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(INVALID_PAYLOAD, f"'{key}' must be a string")
    return value


def _display_name(payload: Dict[str, Any]) -> str:
    return normalize_name(payload.get('displayName', payload.get('name')))


def _create_room(payload):
    return CreateRoom(
        display_name=_display_name(payload),
        settings=parse_settings_patch(payload, allow_unknown=True)
    )


def _set_ready(payload):
    ready = payload.get('ready', True)
    if not isinstance(ready, bool):
        raise ValidationError(INVALID_PAYLOAD, "'ready' must be a boolean")
    return SetReady(normalize_code(payload.get('code')), ready)


def _update_settings(payload):
    patch = payload.get('patch', payload.get('settings'))
    return UpdateSettings(normalize_code(payload.get('code')), parse_settings_patch(patch))


def _cast_vote(payload):
    target = payload.get('targetId', payload.get('target'))
    if not isinstance(target, str) or not target:
        raise ValidationError(INVALID_PAYLOAD, "'targetId' required")
    return CastVote(normalize_code(payload.get('code')), target)


ACTION_PARSERS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    'host:create': _create_room,
    'player:join': lambda p: JoinRoom(normalize_code(p.get('code')), _display_name(p)),
    'player:rejoin': lambda p: Rejoin(normalize_code(p.get('code')), _display_name(p)),
    'player:ready': _set_ready,
    'host:settings': _update_settings,
    'host:start': lambda p: StartGame(normalize_code(p.get('code'))),
    'host:forceNextTurn': lambda p: ForceNextTurn(normalize_code(p.get('code'))),
    'host:forceRestart': lambda p: ForceRestart(normalize_code(p.get('code'))),
    'host:close': lambda p: CloseRoom(normalize_code(p.get('code'))),
    'player:leave': lambda p: LeaveRoom(normalize_code(p.get('code'))),
    'hint:submit': lambda p: SubmitHint(normalize_code(p.get('code')), _text(p, 'text')),
    'vote:cast': _cast_vote,
    'chat:send': lambda p: SendChat(normalize_code(p.get('code')), _text(p, 'text')),
    'rooms:list': lambda p: ListRooms(RoomFilter.from_payload(p.get('filter', p))),
    'rooms:watch': lambda p: WatchRooms(RoomFilter.from_payload(p.get('filter', p))),
    'rooms:unwatch': lambda p: UnwatchRooms(),
}


def parse_action(event_name: str, payload: Optional[Dict[str, Any]]) -> Any:
    """
    Build the action variant for a socket event.

    Raises:
        ValidationError: If the event is unknown or the payload is malformed
    """
    parser = ACTION_PARSERS.get(event_name)
    if parser is None:
        raise ValidationError(INVALID_PAYLOAD, f"unknown action '{event_name}'")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError(INVALID_PAYLOAD)
    return parser(payload)
