from internet_hospital.models.appointment import AppointmentStatus

API = "/api/v1/notifications"


def cancel(client, doctor, patient, make_appointment, auth_headers):
    appointment = make_appointment(doctor, status=AppointmentStatus.RESERVED, patient=patient)
    client.post(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(doctor))
    return appointment


def test_mark_one_as_read(client, doctor, patient, make_appointment, auth_headers):
    cancel(client, doctor, patient, make_appointment, auth_headers)
    headers = auth_headers(patient)
    notification_id = client.get(API, headers=headers).json()["notifications"][0]["id"]

    response = client.patch(f"{API}/{notification_id}/read", headers=headers)
    assert response.status_code == 200

    data = client.get(API, headers=headers).json()
    assert data["unread_count"] == 0
    assert data["notifications"][0]["is_read"] is True
    assert client.get(API, params={"unread_only": True}, headers=headers).json()["notifications"] == []


def test_cannot_read_someone_elses_notification(client, doctor, patient, make_appointment, auth_headers):
    cancel(client, doctor, patient, make_appointment, auth_headers)
    notification_id = client.get(API, headers=auth_headers(patient)).json()["notifications"][0]["id"]

    response = client.patch(f"{API}/{notification_id}/read", headers=auth_headers(doctor))
    assert response.status_code == 404


def test_mark_all_as_read(client, doctor, patient, make_appointment, auth_headers):
    headers = auth_headers(patient)
    cancel(client, doctor, patient, make_appointment, auth_headers)

    response = client.post(f"{API}/read-all", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "1 notifications marked as read"
    assert client.get(API, headers=headers).json()["unread_count"] == 0
