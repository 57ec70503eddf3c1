from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import HTTPException, UploadFile, status
from typing import List, Optional, Tuple
import logging

from ..models.diploma import Diploma
from ..models.doctor import Doctor
from ..models.specialization import Specialization
from ..models.user import User
from ..schemas.common import OperationError, OperationResult
from ..schemas.doctor import DoctorDetailedModel, DoctorModel, DoctorSearchParameters, DoctorUpdate
from .file_service import FileService

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, db: Session, files: FileService):
        self.db = db
        self.files = files

    def _base_query(self):
        return (
            self.db.query(Doctor, User, Specialization.name)
            .join(User, User.id == Doctor.user_id)
            .outerjoin(Specialization, Specialization.id == Doctor.specialization_id)
        )

    def get(self, doctor_id: int) -> Optional[DoctorDetailedModel]:
        row = self._base_query().filter(Doctor.user_id == doctor_id).first()
        if row is None:
            return None

        doctor, user, specialization = row
        diplomas = self.db.query(Diploma.diploma_url).filter(
            Diploma.doctor_id == doctor_id,
            Diploma.is_valid.is_(True)
        ).all()

        return DoctorDetailedModel(
            id=user.id,
            first_name=user.first_name,
            second_name=user.second_name,
            third_name=user.third_name,
            birth_date=user.birth_date,
            avatar_url=user.avatar_url,
            specialization=specialization,
            address=doctor.address,
            doctors_info=doctor.doctors_info,
            license_url=doctor.license_url,
            diploma_urls=[url for (url,) in diplomas]
        )

    def get_all(self, parameters: DoctorSearchParameters) -> Tuple[List[DoctorModel], int]:
        """Doctors matching the search parameters, one page at a time."""
        query = self._base_query()

        if parameters.search_by_name:
            pattern = f"%{parameters.search_by_name.lower()}%"
            query = query.filter(or_(
                func.lower(User.first_name).like(pattern),
                func.lower(User.second_name).like(pattern),
                func.lower(User.third_name).like(pattern)
            ))

        if parameters.search_by_specialization is not None:
            query = query.filter(Doctor.specialization_id == parameters.search_by_specialization)

        doctors_amount = query.count()
        rows = (
            query.order_by(User.second_name, User.first_name, User.id)
            .offset(parameters.offset)
            .limit(parameters.page_count)
            .all()
        )

        return [
            DoctorModel(
                id=user.id,
                first_name=user.first_name,
                second_name=user.second_name,
                third_name=user.third_name,
                avatar_url=user.avatar_url,
                specialization=specialization
            )
            for _, user, specialization in rows
        ], doctors_amount

    def update_doctor_info(self, doctor_id: int, model: DoctorUpdate) -> OperationResult:
        doctor = self.db.get(Doctor, doctor_id)
        if doctor is None:
            return OperationResult.fail(OperationError.NOT_FOUND, "Doctor not found")

        changes = model.model_dump(exclude_unset=True)
        if "specialization_id" in changes and self.db.get(Specialization, changes["specialization_id"]) is None:
            return OperationResult.fail(OperationError.INVALID, "Unknown specialization")

        try:
            for field, value in changes.items():
                setattr(doctor, field, value)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to update doctor {doctor_id}")
            return OperationResult.fail(OperationError.PERSISTENCE, "Error during updating")

        return OperationResult.ok("Doctor info was updated")

    def _require_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.db.get(Doctor, doctor_id)
        if doctor is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    async def add_diploma(self, doctor_id: int, file: UploadFile) -> str:
        self._require_doctor(doctor_id)
        diploma_url = await self.files.upload_diploma(file, doctor_id)
        self.db.add(Diploma(doctor_id=doctor_id, diploma_url=diploma_url))
        self.db.commit()
        return diploma_url

    async def update_license(self, doctor_id: int, file: UploadFile) -> str:
        doctor = self._require_doctor(doctor_id)
        license_url = await self.files.upload_license(file, doctor_id)
        doctor.license_url = license_url
        self.db.commit()
        return license_url

    def get_specializations(self) -> List[Specialization]:
        return self.db.query(Specialization).order_by(Specialization.name).all()
