# =============================================================================
# journal_core/models/entry.py
# Journal Entry Data Model
# =============================================================================
"""
Entry - The weather journal record and its id-less payload.

Wire format (HTTP, push events and local cache) is camelCase JSON:

    {
        "id": "6f1c...",
        "date": "2024-05-01T09:30:00.000Z",
        "temperature": 18.5,
        "description": "cloudy",
        "photoUrl": "data:image/jpeg;base64,...",   # optional
        "coords": {"latitude": 41.38, "longitude": 2.17}
    }
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import numpy as np
import pandas as pd

from journal_core.errors.exceptions import EntryValidationError


def utc_now_iso() -> str:
    """Current UTC time in the millisecond ISO-8601 form the server stores."""
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


def _finite(value: Any, field_name: str) -> float:
    """Coerce to float and reject NaN/inf and non-numeric input."""
    if isinstance(value, bool):
        raise EntryValidationError(f"{field_name} must be a number", field=field_name, actual=value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise EntryValidationError(f"{field_name} must be a number", field=field_name, actual=value)
    if not np.isfinite(number):
        raise EntryValidationError(f"{field_name} must be finite", field=field_name, actual=value)
    return number


@dataclass(frozen=True)
class Coords:
    """Geolocation of an entry."""
    latitude: float
    longitude: float

    def __post_init__(self):
        object.__setattr__(self, "latitude", _finite(self.latitude, "coords.latitude"))
        object.__setattr__(self, "longitude", _finite(self.longitude, "coords.longitude"))

    @classmethod
    def from_dict(cls, raw: Any) -> Coords:
        # The server may hand back the JSON column as text
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                raise EntryValidationError("coords is not valid JSON", field="coords", actual=raw)
        if not isinstance(raw, Mapping):
            raise EntryValidationError("coords is required", field="coords", actual=raw)
        if "latitude" not in raw or "longitude" not in raw:
            raise EntryValidationError(
                "coords needs latitude and longitude", field="coords", actual=dict(raw)
            )
        return cls(latitude=raw["latitude"], longitude=raw["longitude"])

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class EntryData:
    """
    Entry fields without an id.

    This is what the UI submits and what a queued operation replays.
    """
    temperature: float
    description: str
    coords: Coords
    date: str = field(default_factory=utc_now_iso)
    photo_url: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "temperature", _finite(self.temperature, "temperature"))

        if not isinstance(self.description, str) or not self.description.strip():
            raise EntryValidationError(
                "description must be non-empty text", field="description", actual=self.description
            )

        if isinstance(self.coords, Mapping) or isinstance(self.coords, str):
            object.__setattr__(self, "coords", Coords.from_dict(self.coords))
        elif not isinstance(self.coords, Coords):
            raise EntryValidationError("coords is required", field="coords", actual=self.coords)

        if not isinstance(self.date, str) or not self.date.strip():
            raise EntryValidationError("date must be an ISO-8601 string", field="date", actual=self.date)
        try:
            parsed = pd.Timestamp(self.date)
        except (TypeError, ValueError):
            raise EntryValidationError("date is not a valid timestamp", field="date", actual=self.date)
        # "NaT" and similar parse without raising
        if pd.isna(parsed):
            raise EntryValidationError("date is not a valid timestamp", field="date", actual=self.date)

        if self.photo_url is not None and not isinstance(self.photo_url, str):
            raise EntryValidationError("photoUrl must be a string", field="photoUrl", actual=self.photo_url)
        if self.photo_url == "":
            object.__setattr__(self, "photo_url", None)

    @property
    def timestamp(self) -> pd.Timestamp:
        return pd.Timestamp(self.date)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> EntryData:
        """
        Build from a wire/UI mapping.

        Accepts both ``photoUrl`` and the server's raw ``photo_url`` column.
        A missing ``date`` means "now". Unknown keys are ignored.
        """
        if not isinstance(raw, Mapping):
            raise EntryValidationError("entry payload must be a mapping", actual=raw)

        kwargs: Dict[str, Any] = {
            "temperature": raw.get("temperature"),
            "description": raw.get("description"),
            "coords": raw.get("coords"),
            "photo_url": raw.get("photoUrl", raw.get("photo_url")),
        }
        if raw.get("date") is not None:
            kwargs["date"] = raw["date"]
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire format (no id)."""
        data: Dict[str, Any] = {
            "date": self.date,
            "temperature": self.temperature,
            "description": self.description,
            "coords": self.coords.to_dict(),
        }
        if self.photo_url is not None:
            data["photoUrl"] = self.photo_url
        return data

    def with_id(self, entry_id: str) -> Entry:
        return Entry(
            id=entry_id,
            date=self.date,
            temperature=self.temperature,
            description=self.description,
            coords=self.coords,
            photo_url=self.photo_url,
        )


@dataclass(frozen=True)
class Entry:
    """A journal record as seen in the visible collection."""
    id: str
    date: str
    temperature: float
    description: str
    coords: Coords
    photo_url: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise EntryValidationError("entry id must be a non-empty string", field="id", actual=self.id)
        # Reuse the payload validation and take back its normalized values
        data = EntryData(
            temperature=self.temperature,
            description=self.description,
            coords=self.coords,
            date=self.date,
            photo_url=self.photo_url,
        )
        object.__setattr__(self, "temperature", data.temperature)
        object.__setattr__(self, "coords", data.coords)
        object.__setattr__(self, "photo_url", data.photo_url)

    @property
    def data(self) -> EntryData:
        return EntryData(
            temperature=self.temperature,
            description=self.description,
            coords=self.coords,
            date=self.date,
            photo_url=self.photo_url,
        )

    @property
    def timestamp(self) -> pd.Timestamp:
        return pd.Timestamp(self.date)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Entry:
        if not isinstance(raw, Mapping):
            raise EntryValidationError("entry payload must be a mapping", actual=raw)
        if raw.get("date") is None:
            raise EntryValidationError("date is required", field="date")
        entry_id = raw.get("id")
        if entry_id is not None and not isinstance(entry_id, str):
            entry_id = str(entry_id)
        return EntryData.from_dict(raw).with_id(entry_id)

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id}
        data.update(self.data.to_dict())
        return data

    def with_data(self, data: EntryData) -> Entry:
        """Same id, new fields."""
        return replace(
            self,
            date=data.date,
            temperature=data.temperature,
            description=data.description,
            coords=data.coords,
            photo_url=data.photo_url,
        )
