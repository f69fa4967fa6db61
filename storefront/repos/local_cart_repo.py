# storefront/repos/local_cart_repo.py
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from storefront.data.models.local_cart_item import LocalCartItemModel


class LocalCartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_items(self, device_id: str) -> List[LocalCartItemModel]:
        return list(
            self.db.execute(
                select(LocalCartItemModel)
                .where(LocalCartItemModel.device_id == device_id)
                .order_by(LocalCartItemModel.id)
            ).scalars()
        )

    def get_item(self, device_id: str, product_id: int) -> LocalCartItemModel | None:
        return self.db.execute(
            select(LocalCartItemModel).where(
                LocalCartItemModel.device_id == device_id,
                LocalCartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def add_item(self, item: LocalCartItemModel) -> LocalCartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_item(self, device_id: str, product_id: int) -> int:
        res = self.db.execute(
            delete(LocalCartItemModel).where(
                LocalCartItemModel.device_id == device_id,
                LocalCartItemModel.product_id == product_id,
            )
        )
        return res.rowcount

    def delete_all(self, device_id: str) -> int:
        res = self.db.execute(
            delete(LocalCartItemModel).where(LocalCartItemModel.device_id == device_id)
        )
        return res.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
