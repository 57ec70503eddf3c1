import pytest

from internet_hospital.core.config import settings
from internet_hospital.core.security import UserRole
from internet_hospital.models.diploma import Diploma
from internet_hospital.models.doctor import Doctor
from internet_hospital.models.specialization import Specialization

API = "/api/v1/doctors"


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


class TestSearch:

    def test_search_by_name_is_case_insensitive(self, client, create_user):
        create_user(role=UserRole.DOCTOR, first_name="Anna", second_name="Smirnova")
        create_user(role=UserRole.DOCTOR, first_name="Boris", second_name="Volkov")

        response = client.get(API, params={"search_by_name": "VOLK"})
        assert response.status_code == 200

        data = response.json()
        assert data["entity_amount"] == 1
        assert data["entities"][0]["second_name"] == "Volkov"

    def test_search_by_specialization(self, client, create_user, db_session, auth_headers):
        doctor = create_user(role=UserRole.DOCTOR)
        create_user(role=UserRole.DOCTOR, first_name="Boris", second_name="Volkov")
        specialization = db_session.query(Specialization).order_by(Specialization.id.desc()).first()
        client.put(f"{API}/me", json={"specialization_id": specialization.id}, headers=auth_headers(doctor))

        response = client.get(API, params={"search_by_specialization": specialization.id})
        assert [d["id"] for d in response.json()["entities"]] == [doctor.id]
        assert response.json()["entities"][0]["specialization"] == specialization.name

    def test_pagination(self, client, create_user):
        for index in range(3):
            create_user(role=UserRole.DOCTOR, second_name=f"Doctor{index}")

        data = client.get(API, params={"page": 2, "page_count": 2}).json()
        assert data["entity_amount"] == 3
        assert len(data["entities"]) == 1

    def test_specializations(self, client):
        response = client.get(f"{API}/specializations")
        assert response.status_code == 200
        assert "Therapist" in [s["name"] for s in response.json()]


class TestProfile:

    def test_get_doctor(self, client, doctor, patient, auth_headers):
        response = client.get(f"{API}/{doctor.id}", headers=auth_headers(patient))
        assert response.status_code == 200
        assert response.json()["first_name"] == "Anna"
        assert response.json()["address"] == "Main street 1"

    def test_get_missing_doctor(self, client, patient, auth_headers):
        response = client.get(f"{API}/999", headers=auth_headers(patient))
        assert response.status_code == 404

    def test_update_my_profile(self, client, doctor, auth_headers):
        headers = auth_headers(doctor)

        response = client.put(f"{API}/me", json={"address": "Clinic 7", "doctors_info": "20 years"}, headers=headers)
        assert response.status_code == 200

        profile = client.get(f"{API}/me", headers=headers).json()
        assert profile["address"] == "Clinic 7"
        assert profile["doctors_info"] == "20 years"

    def test_update_with_unknown_specialization(self, client, doctor, auth_headers):
        response = client.put(f"{API}/me", json={"specialization_id": 999}, headers=auth_headers(doctor))
        assert response.status_code == 400

    def test_patient_has_no_doctor_profile(self, client, patient, auth_headers):
        response = client.get(f"{API}/me", headers=auth_headers(patient))
        assert response.status_code == 403


class TestDocuments:

    def test_diploma_visible_after_validation(
        self, client, doctor, admin, auth_headers, db_session, upload_dir
    ):
        response = client.post(
            f"{API}/me/diplomas",
            files={"file": ("diploma.pdf", b"%PDF-1.4 diploma", "application/pdf")},
            headers=auth_headers(doctor)
        )
        assert response.status_code == 201
        diploma_url = response.json()["diploma_url"]
        assert diploma_url.startswith(f"{settings.STATIC_URL}/diplomas/{doctor.id}/")
        assert len(list((upload_dir / "diplomas" / str(doctor.id)).iterdir())) == 1

        assert client.get(f"{API}/me", headers=auth_headers(doctor)).json()["diploma_urls"] == []

        diploma = db_session.query(Diploma).filter(Diploma.doctor_id == doctor.id).one()
        client.patch(f"/api/v1/admin/diplomas/{diploma.id}", json={"is_valid": True}, headers=auth_headers(admin))

        assert client.get(f"{API}/me", headers=auth_headers(doctor)).json()["diploma_urls"] == [diploma_url]

    def test_unsupported_file_type(self, client, doctor, auth_headers, upload_dir):
        response = client.put(
            f"{API}/me/license",
            files={"file": ("license.txt", b"plain text", "text/plain")},
            headers=auth_headers(doctor)
        )
        assert response.status_code == 400

    def test_update_license(self, client, doctor, auth_headers, upload_dir):
        response = client.put(
            f"{API}/me/license",
            files={"file": ("license.png", b"\x89PNG fake", "image/png")},
            headers=auth_headers(doctor)
        )
        assert response.status_code == 200
        assert response.json()["license_url"].endswith(".png")

    def test_documents_need_doctor_profile(self, client, doctor, auth_headers, db_session, upload_dir):
        db_session.query(Doctor).filter(Doctor.user_id == doctor.id).delete()
        db_session.commit()
        headers = auth_headers(doctor)

        response = client.put(
            f"{API}/me/license",
            files={"file": ("license.png", b"\x89PNG fake", "image/png")},
            headers=headers
        )
        assert response.status_code == 404

        response = client.post(
            f"{API}/me/diplomas",
            files={"file": ("diploma.pdf", b"%PDF-1.4 diploma", "application/pdf")},
            headers=headers
        )
        assert response.status_code == 404
        assert list(upload_dir.rglob("*.*")) == []
