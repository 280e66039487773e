"""Structural edits to a train's stop list.

Adding and removing stops never changes runtime status. After any edit the
surviving stops are renumbered so that numbers run 1..N without gaps, which
the progression engine relies on to find the next stop.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from django.db import transaction

from accounts.principal import Principal

from .exceptions import AdminRequired, InvalidInput
from .models import Stop
from .repository import ReleaseRepository

logger = logging.getLogger(__name__)

SPEC_FIELDS = ("title", "description", "owner_type", "owner_name")
OWNER_TYPES = frozenset(value for value, _ in Stop.OWNER_TYPES)


def require_admin(actor: Principal) -> None:
    if actor is None or not actor.is_admin:
        raise AdminRequired()


def clean_stop_spec(spec: Mapping[str, Any], position: int) -> Dict[str, Any]:
    """Validate a stop spec and keep only the fields a new stop may set."""

    title = str(spec.get("title") or "").strip()
    owner_name = str(spec.get("owner_name") or "").strip()
    if not title or not owner_name:
        raise InvalidInput(f"Stop {position} is missing required fields")
    owner_type = spec.get("owner_type") or Stop.PERSON
    if owner_type not in OWNER_TYPES:
        raise InvalidInput(f"Stop {position} has an unknown owner type: {owner_type}")
    return {
        "title": title,
        "description": spec.get("description") or "",
        "owner_type": owner_type,
        "owner_name": owner_name,
        "status": Stop.NOT_STARTED,
    }


def number_stop_specs(specs: Iterable[Mapping[str, Any]], start: int = 1) -> List[Dict[str, Any]]:
    """Drop disabled specs and number the rest consecutively from ``start``."""

    enabled = [spec for spec in specs if spec.get("enabled", True)]
    numbered = []
    for offset, spec in enumerate(enabled):
        cleaned = clean_stop_spec(spec, start + offset)
        cleaned["number"] = start + offset
        numbered.append(cleaned)
    return numbered


class RosterEditor:
    def __init__(self, repository: Optional[ReleaseRepository] = None) -> None:
        self.repository = repository or ReleaseRepository()

    def add_stops(
        self, actor: Principal, train_id: int, specs: Sequence[Mapping[str, Any]]
    ) -> List[Stop]:
        """Append stops after the current last one, all ``not_started``."""

        require_admin(actor)
        if not specs:
            return []
        with transaction.atomic():
            train = self.repository.get_train(train_id)
            existing = self.repository.stops_for_train(train_id)
            next_number = max((stop.number for stop in existing), default=0) + 1
            cleaned = []
            for offset, spec in enumerate(specs):
                item = clean_stop_spec(spec, next_number + offset)
                item["number"] = spec.get("number") or next_number + offset
                cleaned.append(item)
            created = self.repository.create_stops(train, cleaned)
        logger.info("Added %d stops to train %s", len(created), train_id)
        return created

    def delete_stops(
        self, actor: Principal, stop_ids: Sequence[int], train_id: Optional[int] = None
    ) -> int:
        """Delete stops together with their notes."""

        require_admin(actor)
        if not stop_ids:
            return 0
        deleted = self.repository.delete_stops(stop_ids, train_id=train_id)
        logger.info("Deleted %d stops from train %s", deleted, train_id)
        return deleted

    def renumber(self, train_id: int) -> List[Stop]:
        """Close gaps in numbering; returns only the stops that moved."""

        stops = self.repository.stops_for_train(train_id, for_update=True)
        changed = []
        for index, stop in enumerate(stops):
            if stop.number != index + 1:
                stop.number = index + 1
                changed.append(stop)
        self.repository.save_stops(changed, ["number", "updated_at"])
        if changed:
            logger.info("Renumbered %d stops on train %s", len(changed), train_id)
        return changed

    def update_release_stops(
        self,
        actor: Principal,
        train_id: int,
        to_add: Sequence[Mapping[str, Any]] = (),
        to_delete_ids: Sequence[int] = (),
    ) -> List[Stop]:
        """Delete, then add, then renumber. Returns the resulting stop list."""

        require_admin(actor)
        with transaction.atomic():
            self.repository.get_train(train_id)
            self.delete_stops(actor, to_delete_ids, train_id=train_id)
            self.add_stops(actor, train_id, to_add)
            self.renumber(train_id)
            stops = self.repository.stops_for_train(train_id)
        return stops

    def update_stop_details(self, actor: Principal, stop_id: int, **fields: Any) -> Stop:
        """Edit title, description or owner. Status and timestamps are untouched."""

        require_admin(actor)
        stop = self.repository.get_stop(stop_id)
        changes = {key: value for key, value in fields.items() if key in SPEC_FIELDS}
        if not changes:
            return stop
        merged = {field: getattr(stop, field) for field in SPEC_FIELDS}
        merged.update(changes)
        cleaned = clean_stop_spec(merged, stop.number)
        for field in changes:
            setattr(stop, field, cleaned[field])
        self.repository.save_stops([stop], [*changes, "updated_at"])
        return stop
