# storefront/repos/user_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def exists(self, user_id: int) -> bool:
        return self.db.execute(
            select(UserModel.id).where(UserModel.id == user_id)
        ).first() is not None

    def is_admin(self, user_id: int) -> bool:
        return bool(self.db.execute(
            select(UserModel.is_admin).where(UserModel.id == user_id)
        ).scalar_one_or_none())

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def commit(self):
        self.db.commit()
