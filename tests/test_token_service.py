from datetime import datetime, timedelta

from internet_hospital.core.config import settings
from internet_hospital.core.security import UserRole, hash_token, verify_token
from internet_hospital.models.user import RefreshToken, UserStatus
from internet_hospital.services.token_service import TokenService


def tokens_of(db, user):
    db.expire_all()
    return db.query(RefreshToken).filter(RefreshToken.user_id == user.id).all()


class TestAccessToken:

    def test_claims_for_approved_patient(self, db_session, patient):
        payload = verify_token(TokenService(db_session).generate_access_token(patient))

        assert payload.sub == patient.id
        assert payload.role == "patient"
        assert payload.token_type == "access"
        assert payload.iss == settings.JWT_ISSUER
        assert payload.approved_patient is True
        assert payload.approved_doctor is False

    def test_claims_for_approved_doctor(self, db_session, create_user):
        doctor = create_user(role=UserRole.DOCTOR, status=UserStatus.NEW)

        payload = verify_token(TokenService(db_session).generate_access_token(doctor))

        assert payload.approved_doctor is True
        assert payload.approved_patient is False

    def test_claims_for_unreviewed_doctor(self, db_session, create_user):
        doctor = create_user(role=UserRole.DOCTOR, status=UserStatus.NEW, doctor_approved=None)

        payload = verify_token(TokenService(db_session).generate_access_token(doctor))

        assert payload.approved_doctor is False


class TestRefreshToken:

    def test_stored_hashed(self, db_session, patient):
        raw = TokenService(db_session).generate_refresh_token(patient)

        stored = tokens_of(db_session, patient)
        assert len(stored) == 1
        assert stored[0].token_hash == hash_token(raw)
        assert stored[0].token_hash != raw
        assert stored[0].expires_at > datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS - 1)

    def test_device_limit_logs_out_every_session(self, db_session, patient):
        service = TokenService(db_session)
        old_tokens = [service.generate_refresh_token(patient) for _ in range(settings.MAX_LOGGED_DEVICES + 1)]

        newest = service.generate_refresh_token(patient)

        stored = tokens_of(db_session, patient)
        assert [token.token_hash for token in stored] == [hash_token(newest)]
        assert service.refresh_token_validation(old_tokens[0]) is None

    def test_rotation(self, db_session, patient):
        service = TokenService(db_session)
        raw = service.generate_refresh_token(patient)

        stored, new_raw = service.refresh_token_validation(raw)

        assert stored.user_id == patient.id
        assert new_raw != raw
        assert service.refresh_token_validation(raw) is None
        assert service.refresh_token_validation(new_raw) is not None

    def test_expired_token_is_deleted(self, db_session, patient):
        service = TokenService(db_session)
        raw = service.generate_refresh_token(patient)
        stored = tokens_of(db_session, patient)[0]
        stored.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert service.refresh_token_validation(raw) is None
        assert tokens_of(db_session, patient) == []

    def test_revoked_token_is_deleted(self, db_session, patient):
        service = TokenService(db_session)
        raw = service.generate_refresh_token(patient)
        stored = tokens_of(db_session, patient)[0]
        stored.revoked = True
        db_session.commit()

        assert service.refresh_token_validation(raw) is None
        assert tokens_of(db_session, patient) == []

    def test_revoke_all(self, db_session, patient, doctor):
        service = TokenService(db_session)
        service.generate_refresh_token(patient)
        service.generate_refresh_token(patient)
        service.generate_refresh_token(doctor)

        service.revoke_all(patient.id)

        assert tokens_of(db_session, patient) == []
        assert len(tokens_of(db_session, doctor)) == 1
