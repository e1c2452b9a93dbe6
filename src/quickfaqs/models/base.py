from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel


TModel = TypeVar("TModel", bound="DBSerializableModel")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DBSerializableModel(BaseModel):
    """
    Base Pydantic model shared by API and persistence layers.

    Each subclass names its logical collection; DB adapters use
    `serialize_for_db` / `from_db` so services never see driver documents.
    """

    # Logical collection name; subclasses should override
    collection_name: ClassVar[str]

    def serialize_for_db(self) -> Dict[str, Any]:
        """
        Convert to a dict suitable for DB persistence.

        This is the single place to control how models are stored;
        DB adapters can still post-process this if needed.
        """
        data = self.model_dump(mode="python", exclude_none=True)
        return {k: v.value if isinstance(v, Enum) else v for k, v in data.items()}

    @classmethod
    def from_db(
        cls: Type[TModel], doc: Optional[Mapping[str, Any]]
    ) -> Optional[TModel]:
        if doc is None:
            return None
        data = dict(doc)
        if "_id" in data:
            data.setdefault("id", str(data["_id"]))
            data.pop("_id")
        return cls.model_validate(data)
