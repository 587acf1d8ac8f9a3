# agency/repos/profile_repo.py
from sqlalchemy.orm import Session

from agency.data.models.profile import ClientProfileModel


class ProfileRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, user_id: str) -> ClientProfileModel | None:
        return self.db.get(ClientProfileModel, user_id)

    def is_admin(self, user_id: str | None) -> bool:
        if not user_id:
            return False
        profile = self.get_profile(user_id)
        return bool(profile and profile.is_admin)
