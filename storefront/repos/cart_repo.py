# storefront/repos/cart_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.cart import CartModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .options(selectinload(CartModel.items))
            .where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def add_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # update carts set version = old + 1 where id = :id and version = :old
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
        )
        return result.rowcount

    def delete_cart(self, cart: CartModel) -> None:
        self.db.delete(cart)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
