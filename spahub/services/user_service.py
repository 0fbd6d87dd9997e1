"""User profile operations."""
from __future__ import annotations

from datetime import date
from typing import Any

from ..exceptions import ConflictError, NotFoundError
from ..models import UserProfile, parse_gender
from ..patching import OperationResult, apply_patch_update
from ..repositories import UserProfileRepository
from ..schemas import UpdateProfileRequest


class UserService:
    def __init__(self, profiles: UserProfileRepository | None = None) -> None:
        self.profiles = profiles or UserProfileRepository()

    def create_profile(
        self,
        user_id: int,
        first_name: str,
        last_name: str,
        gender: str,
        date_of_birth: date,
        commit: bool = True,
    ) -> UserProfile:
        if self.profiles.get_by_user_id(user_id) is not None:
            raise ConflictError("A profile already exists for this user.")

        profile = UserProfile(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            gender=parse_gender(gender),
            date_of_birth=date_of_birth,
        )
        self.profiles.create(profile)
        if commit:
            self.profiles.save_changes()
        return profile

    def get_profile(self, user_id: int) -> UserProfile:
        profile = self.profiles.get_by_user_id(user_id)
        if profile is None:
            raise NotFoundError("Profile not found.")
        return profile

    def update_profile(self, user_id: int, document: Any) -> OperationResult:
        profile = self.get_profile(user_id)
        return apply_patch_update(
            document,
            profile,
            to_request=lambda entity: {
                "first_name": entity.first_name,
                "last_name": entity.last_name,
                "gender": entity.gender,
                "date_of_birth": entity.date_of_birth,
            },
            request_model=UpdateProfileRequest,
            update=lambda request, entity: entity.update_profile(
                request.first_name, request.last_name, request.gender, request.date_of_birth
            ),
            specification=None,
            repository=self.profiles,
            entity_label="profile",
        )
