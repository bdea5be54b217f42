from sqlalchemy.orm import Session
from typing import Generic, Type, TypeVar, Optional, Dict, Any
from app.models.base import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Shared data access for one model.

    Write helpers only flush. Committing is the caller's job (see
    `app.database.atomic`) so that several repository calls can share one
    transaction.
    """

    def __init__(self, model: Type[T], db: Session):
        self.model = model
        self.db = db

    def get(self, id: int) -> Optional[T]:
        return self.db.get(self.model, id)

    def add(self, obj: T) -> T:
        """Stage a new record and flush it so its primary key is populated."""
        self.db.add(obj)
        self.db.flush()
        return obj

    def update(self, obj: T, data: Dict[str, Any]) -> T:
        """Apply attribute changes to a loaded record; unknown keys are ignored."""
        for key, value in data.items():
            if hasattr(obj, key):
                setattr(obj, key, value)
        self.db.flush()
        return obj

    def delete(self, obj: T) -> None:
        """Delete a loaded record, cascading per the model's relationships."""
        self.db.delete(obj)
        self.db.flush()
