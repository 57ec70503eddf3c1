from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import UploadFile
from typing import List, Optional
import logging

from ..models.passport import Passport
from ..models.user import User, UserStatus
from ..schemas.patient import PatientModel, PatientProfile
from .file_service import FileService

logger = logging.getLogger(__name__)

class PatientService:
    def __init__(self, db: Session, files: FileService):
        self.db = db
        self.files = files

    def get_patient_profile(self, user_id: int) -> Optional[PatientProfile]:
        user = self.db.get(User, user_id)
        if user is None:
            return None

        passports = self.db.query(Passport.passport_url).filter(
            Passport.user_id == user_id
        ).order_by(Passport.added_time.desc(), Passport.id.desc()).all()

        return PatientProfile(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            second_name=user.second_name,
            third_name=user.third_name,
            phone_number=user.phone_number,
            birth_date=user.birth_date,
            avatar_url=user.avatar_url,
            status=user.status,
            passport_urls=[url for (url,) in passports]
        )

    async def update_patient_info(
        self, patient_model: PatientModel, user_id: int, files: Optional[List[UploadFile]] = None
    ) -> bool:
        """Update profile fields and attach uploaded passport scans."""
        user = self.db.get(User, user_id)
        if user is None:
            return False

        passport_urls = await self.files.upload_passports(files, user_id) if files else []

        try:
            user.first_name = patient_model.first_name
            user.second_name = patient_model.second_name
            user.third_name = patient_model.third_name
            user.phone_number = patient_model.phone_number
            user.birth_date = patient_model.birth_date

            for url in passport_urls:
                self.db.add(Passport(user_id=user_id, passport_url=url))

            # Submitted documents wait for an administrator's review
            if passport_urls and user.status == UserStatus.NEW:
                user.status = UserStatus.NOT_APPROVED

            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            self.files.remove(passport_urls)
            logger.exception(f"Failed to update profile of patient {user_id}")
            return False

    async def update_avatar(self, file: UploadFile, user: User) -> str:
        avatar_url = await self.files.upload_avatar(file, user.id)
        user.avatar_url = avatar_url
        self.db.commit()
        return avatar_url

    def get_avatar(self, user_id: int) -> Optional[str]:
        user = self.db.get(User, user_id)
        return user.avatar_url if user else None
