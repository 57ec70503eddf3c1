import asyncio
import io

import pytest
from fastapi import UploadFile
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers

from internet_hospital.core.config import settings
from internet_hospital.models.passport import Passport
from internet_hospital.models.user import User, UserStatus
from internet_hospital.schemas.patient import PatientModel
from internet_hospital.services.file_service import FileService
from internet_hospital.services.patient_service import PatientService

API = "/api/v1/patients"

profile_form = {
    "first_name": "  mARIA ",
    "second_name": "ivanova",
    "third_name": "",
    "phone_number": "+7 900 123-45-67",
    "birth_date": "1990-05-17"
}


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


class TestProfile:

    def test_update_profile_normalizes_names(self, client, patient, auth_headers):
        headers = auth_headers(patient)

        response = client.put(f"{API}/profile", data=profile_form, headers=headers)
        assert response.status_code == 200

        profile = client.get(f"{API}/profile", headers=headers).json()
        assert profile["first_name"] == "Maria"
        assert profile["second_name"] == "Ivanova"
        assert profile["third_name"] is None
        assert profile["birth_date"] == "1990-05-17"

    def test_future_birth_date_is_rejected(self, client, patient, auth_headers):
        form = dict(profile_form, birth_date="2999-01-01")

        response = client.put(f"{API}/profile", data=form, headers=auth_headers(patient))
        assert response.status_code == 422

    def test_passports_send_new_patient_to_review(
        self, client, create_user, auth_headers, db_session, upload_dir
    ):
        newcomer = create_user(status=UserStatus.NEW)

        response = client.put(
            f"{API}/profile",
            data=profile_form,
            files=[
                ("passports", ("page1.jpg", b"\xff\xd8 first", "image/jpeg")),
                ("passports", ("page2.pdf", b"%PDF second", "application/pdf")),
            ],
            headers=auth_headers(newcomer)
        )
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.get(User, newcomer.id).status == UserStatus.NOT_APPROVED
        assert db_session.query(Passport).filter(Passport.user_id == newcomer.id).count() == 2
        assert len(list((upload_dir / "passports" / str(newcomer.id)).iterdir())) == 2

    def test_doctor_cannot_edit_patient_profile(self, client, doctor, auth_headers):
        response = client.put(f"{API}/profile", data=profile_form, headers=auth_headers(doctor))
        assert response.status_code == 403


class TestAvatar:

    def test_upload_avatar(self, client, patient, auth_headers, upload_dir):
        headers = auth_headers(patient)
        assert client.get(f"{API}/avatar", headers=headers).json()["avatar_url"] is None

        response = client.put(
            f"{API}/avatar",
            files={"file": ("me.png", b"\x89PNG avatar", "image/png")},
            headers=headers
        )
        assert response.status_code == 200
        avatar_url = response.json()["avatar_url"]
        assert avatar_url.startswith(f"{settings.STATIC_URL}/avatars/{patient.id}/")

        assert client.get(f"{API}/avatar", headers=headers).json()["avatar_url"] == avatar_url

    def test_empty_avatar_is_rejected(self, client, patient, auth_headers, upload_dir):
        response = client.put(
            f"{API}/avatar",
            files={"file": ("me.png", b"", "image/png")},
            headers=auth_headers(patient)
        )
        assert response.status_code == 400

    def test_pdf_is_not_an_avatar(self, client, patient, auth_headers, upload_dir):
        response = client.put(
            f"{API}/avatar",
            files={"file": ("me.pdf", b"%PDF", "application/pdf")},
            headers=auth_headers(patient)
        )
        assert response.status_code == 400


def upload(name, content, content_type):
    return UploadFile(io.BytesIO(content), filename=name, headers=Headers({"content-type": content_type}))


class TestPassportUploads:

    def test_invalid_file_leaves_nothing_behind(
        self, client, create_user, auth_headers, db_session, upload_dir
    ):
        newcomer = create_user(status=UserStatus.NEW)

        response = client.put(
            f"{API}/profile",
            data=profile_form,
            files=[
                ("passports", ("a.png", b"\x89PNG first", "image/png")),
                ("passports", ("b.exe", b"MZ binary", "application/x-msdownload")),
            ],
            headers=auth_headers(newcomer)
        )
        assert response.status_code == 400

        assert list(upload_dir.rglob("*.*")) == []
        db_session.expire_all()
        assert db_session.query(Passport).filter(Passport.user_id == newcomer.id).count() == 0
        assert db_session.get(User, newcomer.id).status == UserStatus.NEW

    def test_oversized_file_is_rejected(
        self, client, patient, auth_headers, upload_dir, monkeypatch
    ):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 8)

        response = client.put(
            f"{API}/profile",
            data=profile_form,
            files=[("passports", ("scan.png", b"\x89PNG12345", "image/png"))],
            headers=auth_headers(patient)
        )
        assert response.status_code == 413
        assert list(upload_dir.rglob("*.*")) == []

    def test_file_at_size_limit_is_accepted(
        self, client, patient, auth_headers, upload_dir, monkeypatch
    ):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 8)

        response = client.put(
            f"{API}/avatar",
            files={"file": ("me.png", b"\x89PNG1234", "image/png")},
            headers=auth_headers(patient)
        )
        assert response.status_code == 200

    def test_failed_commit_removes_stored_scans(
        self, create_user, db_session, upload_dir, monkeypatch
    ):
        newcomer = create_user(status=UserStatus.NEW)
        service = PatientService(db_session, FileService())

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database is unavailable"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        updated = asyncio.run(service.update_patient_info(
            PatientModel(first_name="Maria", second_name="Ivanova"),
            newcomer.id,
            [upload("page1.jpg", b"\xff\xd8 first", "image/jpeg")]
        ))

        assert updated is False
        assert list(upload_dir.rglob("*.*")) == []
