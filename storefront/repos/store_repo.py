# storefront/repos/store_repo.py
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.store import ShippingMethodModel, StoreSettingsModel


class StoreRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_settings(self) -> StoreSettingsModel | None:
        return self.db.execute(
            select(StoreSettingsModel).order_by(StoreSettingsModel.id).limit(1)
        ).scalar_one_or_none()

    def add(self, entity) -> None:
        self.db.add(entity)

    def active(self, model) -> list:
        return list(self.db.execute(
            select(model)
            .where(model.deleted_at.is_(None), model.is_active.is_(True))
            .order_by(model.id)
        ).scalars().all())

    def by_code(self, model, code: str):
        return self.db.execute(select(model).where(model.code == code)).scalar_one_or_none()

    def shipping_method(self, method_id: int) -> ShippingMethodModel | None:
        return self.db.get(ShippingMethodModel, method_id)

    def soft_delete_missing(self, model, column, kept: list) -> int:
        """Soft-deletes live rows whose column value is not in kept."""
        result = self.db.execute(
            update(model)
            .where(model.deleted_at.is_(None), column.not_in(kept))
            .values(deleted_at=datetime.now(timezone.utc), is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def flush(self):
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

