"""Type definitions for provider payloads and persisted completion records."""
from __future__ import annotations

from typing import Any, List, Optional, TypedDict


class RawResultPayload(TypedDict, total=False):
    """
    One runner reading as returned by the timing provider's runner list.

    All fields are optional (total=False): the provider omits keys freely and
    devices that were swapped mid-race produce partial duplicates.
    """
    # Provider identity
    id: str
    gameId: str

    # Runner identity
    name: str
    clubName: Optional[str]
    groupName: Optional[str]

    # Relay team id; 0 or missing means no team
    teamId: Optional[int]

    # Elapsed time text; the provider spells the field "totleTime".
    # Older exports use one of the fallbacks below.
    totleTime: Optional[str]
    totalTime: Optional[str]
    time: Optional[str]
    finishTime: Optional[str]
    result: Optional[str]

    # true / false / null (no verdict from the device); other values are kept
    # as an unrecognised verdict that loses every duplicate tie
    validity: Optional[bool]
    # Disqualification code or other explanation
    reason: Optional[str]
    # Control punch list, carried through untouched
    punchs: Optional[List[Any]]


class CompletionRecordPayload(TypedDict, total=False):
    """
    Shape handed to the persistence sink, upserted by (name, eventName, gameType).
    """
    name: str
    eventName: str
    eventType: Optional[str]
    gameType: str
    # Displayed result: own time, team total for relay members, or "DNF"
    result: str
    groupName: str
    validity: bool
    position: Optional[int]
    eventDate: Optional[str]
    reason: Optional[str]
    punchs: Optional[List[Any]]
    # Relay member's own time when `result` holds the team total
    relayPersonalTotalTime: Optional[str]
    teamId: Optional[str]


# Time keys in lookup order
TIME_FIELDS = ("totleTime", "totalTime", "time", "finishTime", "result")
