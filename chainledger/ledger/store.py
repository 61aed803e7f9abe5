"""Entity access used by the processor, plus an in-memory implementation."""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Any, Protocol, TypeVar

import orjson

from chainledger.ledger.entities import ENTITY_TYPES, Entity

E = TypeVar("E", bound=Entity)


class EntityStore(Protocol):
    """Key-value lookup and write capability for ledger entities."""

    def get(self, entity_type: type[E], entity_id: str) -> E | None: ...

    def set(self, entity: Entity) -> None: ...

    def get_where(self, entity_type: type[E], field: str, value: Any) -> list[E]: ...

    def delete(self, entity_type: type[E], entity_id: str) -> None: ...


class InMemoryEntityStore:
    """Dict-backed EntityStore with secondary indexes on `indexed_fields`.

    Insertion order is preserved, so `get_where` returns entities in the order
    they were first written.
    """

    def __init__(self) -> None:
        self._tables: dict[type[Entity], dict[str, Entity]] = defaultdict(dict)
        # (entity_type, field) -> field value -> ordered set of ids
        self._indexes: dict[tuple[type[Entity], str], dict[Any, dict[str, None]]] = defaultdict(
            lambda: defaultdict(dict)
        )

    def get(self, entity_type: type[E], entity_id: str) -> E | None:
        return self._tables[entity_type].get(entity_id)  # type: ignore[return-value]

    def set(self, entity: Entity) -> None:
        entity_type = type(entity)
        previous = self._tables[entity_type].get(entity.id)
        if previous is not None:
            self._unindex(previous)
        self._tables[entity_type][entity.id] = entity
        for field in entity_type.indexed_fields:
            self._indexes[(entity_type, field)][getattr(entity, field)][entity.id] = None

    def get_where(self, entity_type: type[E], field: str, value: Any) -> list[E]:
        table = self._tables[entity_type]
        if field in entity_type.indexed_fields:
            ids = self._indexes[(entity_type, field)].get(value, {})
            return [table[entity_id] for entity_id in ids]  # type: ignore[misc]
        return [e for e in table.values() if getattr(e, field) == value]  # type: ignore[misc]

    def delete(self, entity_type: type[E], entity_id: str) -> None:
        entity = self._tables[entity_type].pop(entity_id, None)
        if entity is not None:
            self._unindex(entity)

    def all(self, entity_type: type[E]) -> list[E]:
        return list(self._tables[entity_type].values())  # type: ignore[arg-type]

    def count(self, entity_type: type[Entity]) -> int:
        return len(self._tables[entity_type])

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Serialize every table, keyed by entity type name."""
        return {
            entity_type.__name__: [entity.to_dict() for entity in table.values()]
            for entity_type, table in self._tables.items()
            if table
        }

    def dump(self, path: str | Path, checkpoint: tuple[int, int] | None = None) -> None:
        """Write all entities, and the key of the last applied event, to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "checkpoint": list(checkpoint) if checkpoint is not None else None,
            "entities": self.to_dict(),
        }
        target.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))

    @classmethod
    def load(cls, path: str | Path) -> tuple["InMemoryEntityStore", tuple[int, int] | None]:
        """Rebuild a store from a `dump` file. Returns the store and its checkpoint."""
        payload = orjson.loads(Path(path).read_bytes())
        store = cls()
        for type_name, rows in payload.get("entities", {}).items():
            entity_type = ENTITY_TYPES.get(type_name)
            if entity_type is None:
                raise ValueError(f"unknown entity type in dump: {type_name}")
            for row in rows:
                store.set(entity_type.from_dict(row))
        checkpoint = payload.get("checkpoint")
        return store, (tuple(checkpoint) if checkpoint else None)  # type: ignore[return-value]

    def _unindex(self, entity: Entity) -> None:
        entity_type = type(entity)
        for field in entity_type.indexed_fields:
            bucket = self._indexes[(entity_type, field)].get(getattr(entity, field))
            if bucket is not None:
                bucket.pop(entity.id, None)

